"""Shared helpers: logging and console output."""
