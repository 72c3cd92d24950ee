"""Shared fixtures: an in-memory npm registry and a project directory."""

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

import pytest

from lnpm.registry.npm.client import PackageNotFoundError, RegistryError


class FakeRegistry:
    """Stands in for NpmRegistryClient; records every lookup."""

    def __init__(self):
        self.packuments: Dict[str, Dict[str, Any]] = {}
        self.manifests: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.broken: Dict[str, str] = {}
        self.calls: List[Tuple[str, ...]] = []

    def publish(self, name: str, versions, latest: Optional[str] = None, tags=None, typed=()):
        """Add a package; versions listed in ``typed`` declare ``types``."""
        dist_tags = dict(tags or {})
        if latest is not None:
            dist_tags["latest"] = latest
        self.packuments[name] = {
            "name": name,
            "dist-tags": dist_tags,
            "versions": {v: {"name": name, "version": v} for v in versions},
        }
        for v in versions:
            manifest = {"name": name, "version": v}
            if v in typed:
                manifest["types"] = "index.d.ts"
            self.manifests[(name, v)] = manifest
        return self

    async def fetch_packument(self, name: str) -> Dict[str, Any]:
        self.calls.append(("packument", name))
        if name in self.broken:
            raise RegistryError(self.broken[name])
        if name not in self.packuments:
            raise PackageNotFoundError(name)
        return self.packuments[name]

    async def fetch_manifest(self, name: str, version: str) -> Dict[str, Any]:
        self.calls.append(("manifest", name, version))
        if (name, version) not in self.manifests:
            raise PackageNotFoundError(name, version)
        return self.manifests[(name, version)]


class SlowRegistry(FakeRegistry):
    """FakeRegistry whose lookups yield to the loop and count overlap."""

    def __init__(self, delay: float = 0.01):
        super().__init__()
        self.delay = delay
        self.in_flight = 0
        self.peak = 0

    async def _tracked(self, lookup):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            return await lookup
        finally:
            self.in_flight -= 1

    async def fetch_packument(self, name: str) -> Dict[str, Any]:
        return await self._tracked(super().fetch_packument(name))

    async def fetch_manifest(self, name: str, version: str) -> Dict[str, Any]:
        return await self._tracked(super().fetch_manifest(name, version))


@pytest.fixture
def registry():
    return FakeRegistry()


@pytest.fixture
def write_package_json(tmp_path):
    """Write a package.json into tmp_path and return its path."""
    def _write(content: Dict[str, Any], indent=2) -> Any:
        path = tmp_path / "package.json"
        path.write_text(json.dumps(content, indent=indent) + "\n", encoding="utf-8")
        return path
    return _write


@pytest.fixture
def slow_registry():
    return SlowRegistry()
