"""package.json discovery, loading, merging and atomic saving."""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from lnpm.constants import Constants
from lnpm.versioning.models import ResolvedPackage

logger = logging.getLogger(__name__)

_INDENT_RE = re.compile(r"^\s*[{\[]\r?\n([ \t]+)")
_DEFAULT_INDENT = "  "

PathLike = Union[str, "os.PathLike[str]"]


class ManifestError(Exception):
    """package.json could not be read, parsed or written."""


def find_package_json_dir(cwd: PathLike) -> Optional[Path]:
    """Return the nearest directory from ``cwd`` upward holding package.json."""
    start = Path(cwd).absolute()
    for directory in (start, *start.parents):
        if (directory / Constants.PACKAGE_JSON_FILE).is_file():
            return directory
    return None


class PackageJson:
    """Structured view of a project's package.json.

    Key order, indentation and the trailing newline of the file are kept when
    it is written back.
    """

    def __init__(self, path: Path, content: Dict[str, Any], indent: str = _DEFAULT_INDENT, newline: str = "\n"):
        self.path = Path(path)
        self._content = content
        self.indent = indent
        self.newline = newline

    @classmethod
    def load(cls, directory: PathLike) -> "PackageJson":
        """Read ``<directory>/package.json``.

        Raises:
            ManifestError: The file is unreadable or not a JSON object.
        """
        path = Path(directory) / Constants.PACKAGE_JSON_FILE
        try:
            with open(path, encoding="utf-8-sig") as file:
                text = file.read()
        except OSError as e:
            raise ManifestError(f"Could not read {path}: {e}") from e
        try:
            content = json.loads(text)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Could not parse {path}: {e}") from e
        if not isinstance(content, dict):
            raise ManifestError(f"{path} does not contain a JSON object")

        match = _INDENT_RE.match(text)
        indent = match.group(1) if match else _DEFAULT_INDENT
        newline = "\r\n" if "\r\n" in text else "\n"
        logger.debug("Loaded %s", path)
        return cls(path, content, indent=indent, newline=newline)

    @property
    def content(self) -> Dict[str, Any]:
        return self._content

    def section(self, name: str) -> Dict[str, str]:
        """Copy of one dependency section; empty if absent."""
        entries = self._content.get(name)
        return dict(entries) if isinstance(entries, Mapping) else {}

    def update(self, changes: Mapping[str, Any]) -> None:
        """Set top-level fields; a None value removes the field."""
        for key, value in changes.items():
            if value is None:
                self._content.pop(key, None)
            else:
                self._content[key] = value

    def dumps(self) -> str:
        text = json.dumps(self._content, indent=self.indent, ensure_ascii=False)
        return text.replace("\n", self.newline) + self.newline

    def save(self) -> None:
        """Write the manifest back atomically.

        Raises:
            ManifestError: The file could not be written; the original is left
                untouched.
        """
        data = self.dumps()
        directory = self.path.parent
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=".package.json-", suffix=".tmp", dir=directory)
        except OSError as e:
            raise ManifestError(f"Could not write {self.path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as file:
                file.write(data)
            if self.path.exists():
                os.chmod(tmp_path, self.path.stat().st_mode & 0o777)
            os.replace(tmp_path, self.path)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                logger.debug("Failed to remove temp file: %s", tmp_path)
            raise ManifestError(f"Could not write {self.path}: {e}") from e
        logger.info("Saved %s", self.path)


def _merge_section(
    package_json: PackageJson, section: str, packages: Iterable[ResolvedPackage]
) -> Optional[Dict[str, str]]:
    entries = package_json.section(section)
    added = False
    for pkg in packages:
        entries[pkg.name] = str(pkg.version)
        added = True
    if not added and section not in package_json.content:
        return None
    return entries


def apply_packages(
    package_json: PackageJson,
    resolved: Iterable[ResolvedPackage],
    types_packages: Iterable[ResolvedPackage],
) -> None:
    """Merge resolved packages into the dependency sections of ``package_json``.

    Runtime packages land in ``dependencies``; dev packages and every
    ``@types`` companion land in ``devDependencies``. Existing entries are kept
    unless the same package is being installed. ``peerDependencies`` and
    ``optionalDependencies`` are not touched.
    """
    resolved = list(resolved)
    changes = {}
    dependencies = _merge_section(
        package_json, Constants.DEPENDENCIES, (pkg for pkg in resolved if not pkg.is_dev)
    )
    if dependencies is not None:
        changes[Constants.DEPENDENCIES] = dependencies
    dev_dependencies = _merge_section(
        package_json,
        Constants.DEV_DEPENDENCIES,
        [pkg for pkg in [*resolved, *types_packages] if pkg.is_dev],
    )
    if dev_dependencies is not None:
        changes[Constants.DEV_DEPENDENCIES] = dev_dependencies
    package_json.update(changes)
