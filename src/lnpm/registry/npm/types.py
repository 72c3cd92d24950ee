"""Type-coverage classification and ``@types`` companion lookup."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from lnpm.common import console
from lnpm.constants import Constants
from lnpm.result import Result, failure, success
from lnpm.versioning.models import ResolvedPackage
from lnpm.versioning.parser import is_types_package, to_types_package_name
from lnpm.versioning.resolver import parse_range, pick_manifest_version

from .client import NpmRegistryClient, PackageNotFoundError, RegistryError

logger = logging.getLogger(__name__)


def has_type_declarations(manifest: Mapping[str, Any]) -> bool:
    """True if a version manifest declares its own ``types``/``typings`` entry."""
    return any(field in manifest for field in Constants.TYPE_DECLARATION_FIELDS)


def is_typed_project(content: Mapping[str, Any]) -> bool:
    """True if the host project depends on typescript or ts-node."""
    declared = {}
    for section in (Constants.DEPENDENCIES, Constants.DEV_DEPENDENCIES):
        entries = content.get(section)
        if isinstance(entries, Mapping):
            declared.update(entries)
    return any(marker in declared for marker in Constants.TYPED_PROJECT_MARKERS)


def needs_types_package(package: ResolvedPackage) -> bool:
    """Runtime dependencies without bundled types want an ``@types`` companion."""
    return not is_types_package(package.name) and not package.is_dev and not package.typed


async def check_typed(client: NpmRegistryClient, name: str, version: Any) -> Result[bool]:
    """Fetch ``name@version`` and report whether it ships type declarations."""
    try:
        manifest = await client.fetch_manifest(name, str(version))
    except PackageNotFoundError:
        return failure(f"Package {name}@{version} not found")
    except RegistryError as exc:
        return failure(str(exc))
    return success(has_type_declarations(manifest))


async def resolve_types_package(
    client: NpmRegistryClient, package: ResolvedPackage
) -> Optional[ResolvedPackage]:
    """Resolve the ``@types`` companion of ``package`` within its major version.

    A missing companion is not an error: a warning is printed and None is
    returned.
    """
    types_name = to_types_package_name(package.name)
    spec = parse_range(f"~{package.version.major}")
    version = None
    try:
        packument = await client.fetch_packument(types_name)
    except PackageNotFoundError:
        logger.debug("%s does not exist", types_name)
    except RegistryError as exc:
        logger.debug("Lookup of %s failed: %s", types_name, exc)
    else:
        version = pick_manifest_version(packument, spec)

    if version is None:
        console.warn(f"{package.name} is not typed, but {types_name} is not found")
        return None
    return ResolvedPackage(name=types_name, is_dev=True, version=version, typed=True)
