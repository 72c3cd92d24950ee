"""Data models for specifier parsing and package resolution."""

from dataclasses import dataclass

import semantic_version


@dataclass(frozen=True)
class PackageRequest:
    """One package asked for on the command line."""
    name: str
    is_dev: bool
    version: str  # range, exact version or dist-tag; "*" when omitted


@dataclass(frozen=True)
class ResolvedPackage:
    """A request pinned to a concrete version.

    ``@types`` companions use the same shape with ``is_dev`` and ``typed``
    both set.
    """
    name: str
    is_dev: bool
    version: semantic_version.Version
    typed: bool

    @property
    def spec(self) -> str:
        """``name@version`` as shown to the user."""
        return f"{self.name}@{self.version}"
