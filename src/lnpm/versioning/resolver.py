"""npm version resolution against a registry packument."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import semantic_version

from lnpm.common.logging_utils import extra_context, is_debug_enabled
from lnpm.constants import Constants
from lnpm.registry.npm.client import NpmRegistryClient, PackageNotFoundError, RegistryError
from lnpm.result import Result, failure, success

from .models import PackageRequest

logger = logging.getLogger(__name__)


def parse_version(raw: Optional[str]) -> Optional[semantic_version.Version]:
    """Parse a registry version string, tolerating a leading ``v`` or ``=``."""
    if not isinstance(raw, str):
        return None
    text = raw.strip().lstrip("=v").strip()
    try:
        return semantic_version.Version(text)
    except ValueError:
        return None


def parse_range(spec: str) -> Optional[semantic_version.NpmSpec]:
    """Return the npm range for ``spec``, or None when it is not a valid range."""
    try:
        return semantic_version.NpmSpec(spec)
    except ValueError:
        return None


def _parsed_versions(candidates: Iterable[str]) -> List[semantic_version.Version]:
    parsed = []
    for raw in candidates:
        version = parse_version(raw)
        if version is not None:
            parsed.append(version)
    return parsed


def max_satisfying(candidates: Iterable[str], spec: semantic_version.NpmSpec) -> Optional[semantic_version.Version]:
    """Highest candidate matching ``spec``; unparseable candidates are skipped."""
    return spec.select(_parsed_versions(candidates))


def _dist_tags(packument: Dict[str, Any]) -> Dict[str, str]:
    tags = packument.get("dist-tags")
    return tags if isinstance(tags, dict) else {}


def _published_versions(packument: Dict[str, Any]) -> List[str]:
    versions = packument.get("versions")
    return list(versions.keys()) if isinstance(versions, dict) else []


def pick_version(packument: Dict[str, Any], request: PackageRequest) -> Result[semantic_version.Version]:
    """Select the version ``request`` asks for from ``packument``.

    Order: the ``latest`` tag for an empty, ``*`` or ``latest`` constraint; a
    dist-tag lookup when the constraint is not a valid range; otherwise the
    highest published version satisfying the range.
    """
    spec = request.version
    if not spec or spec in (Constants.LATEST_TAG, Constants.DEFAULT_VERSION_SPEC):
        resolved = _dist_tags(packument).get(Constants.LATEST_TAG)
        if resolved is None:
            return failure(f"Tag {Constants.LATEST_TAG} not found for {request.name}")
    else:
        npm_range = parse_range(spec)
        if npm_range is None:
            resolved = _dist_tags(packument).get(spec)
            if resolved is None:
                return failure(f"Tag {spec} not found for {request.name}")
        else:
            best = max_satisfying(_published_versions(packument), npm_range)
            if best is None:
                return failure(f"Version {spec} not found for {request.name}")
            resolved = str(best)

    version = parse_version(resolved)
    if version is None:
        return failure(f"Invalid version: {resolved}")
    return success(version)


def pick_manifest_version(packument: Dict[str, Any], spec: semantic_version.NpmSpec) -> Optional[semantic_version.Version]:
    """Pick a version the way npm picks an install manifest for a range.

    The ``latest`` dist-tag wins whenever it satisfies ``spec``; otherwise the
    highest satisfying published version is used.
    """
    latest = parse_version(_dist_tags(packument).get(Constants.LATEST_TAG))
    if latest is not None and spec.match(latest) and str(latest) in _published_versions(packument):
        return latest
    return max_satisfying(_published_versions(packument), spec)


async def resolve_package_version(
    client: NpmRegistryClient, request: PackageRequest
) -> Result[semantic_version.Version]:
    """Fetch the packument for ``request`` and resolve it to one version."""
    try:
        packument = await client.fetch_packument(request.name)
    except PackageNotFoundError:
        return failure(f"Package {request.name} not found")
    except RegistryError as exc:
        return failure(str(exc))

    result = pick_version(packument, request)
    if is_debug_enabled(logger):
        logger.debug(
            "Version resolution",
            extra=extra_context(
                event="resolve",
                component="resolver",
                package=request.name,
                requested_spec=request.version,
                outcome="success" if result.ok else "failure",
                candidate_count=len(_published_versions(packument)),
            ),
        )
    return result
