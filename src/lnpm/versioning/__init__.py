"""Specifier parsing and version resolution."""
