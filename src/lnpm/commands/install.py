"""The ``install`` command.

Stages run in order and each one is a barrier: specifier parsing, version
resolution, type classification, manifest update, then the package manager's
own install. Parse and resolution failures are collected and reported
together before anything is written.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, NoReturn, Optional, Sequence

import semantic_version

from lnpm.common import console
from lnpm.constants import ExitCodes
from lnpm.installer import InstallerError, run_install
from lnpm.manifest import ManifestError, PackageJson, apply_packages, find_package_json_dir
from lnpm.registry.npm.client import NpmRegistryClient
from lnpm.registry.npm.types import check_typed, is_typed_project, needs_types_package, resolve_types_package
from lnpm.result import handle_results
from lnpm.versioning.models import PackageRequest, ResolvedPackage
from lnpm.versioning.parser import parse_package, to_types_package_name
from lnpm.versioning.resolver import resolve_package_version

logger = logging.getLogger(__name__)


def _fail(message: str) -> NoReturn:
    console.error(message)
    sys.exit(ExitCodes.FAILURE.value)


def parse_packages(packages: Sequence[str], is_dev_option: bool) -> List[PackageRequest]:
    """Parse every token; exit reporting all invalid ones if any fails."""
    return handle_results([parse_package(token, is_dev_option) for token in packages])


async def resolve_versions(
    client: NpmRegistryClient, requests: Sequence[PackageRequest]
) -> List[semantic_version.Version]:
    results = await asyncio.gather(*(resolve_package_version(client, req) for req in requests))
    return handle_results(results)


async def classify_packages(
    client: NpmRegistryClient,
    requests: Sequence[PackageRequest],
    versions: Sequence[semantic_version.Version],
) -> List[ResolvedPackage]:
    """Attach the ``typed`` flag to every resolved request."""
    results = await asyncio.gather(
        *(check_typed(client, req.name, version) for req, version in zip(requests, versions))
    )
    typed_flags = handle_results(results)
    return [
        ResolvedPackage(name=req.name, is_dev=req.is_dev, version=version, typed=typed)
        for req, version, typed in zip(requests, versions, typed_flags)
    ]


async def resolve_types_packages(
    client: NpmRegistryClient, resolved: Sequence[ResolvedPackage], typed_project: bool
) -> List[ResolvedPackage]:
    """Find ``@types`` companions for untyped runtime dependencies."""
    if not typed_project:
        return []
    found = await asyncio.gather(
        *(resolve_types_package(client, pkg) for pkg in resolved if needs_types_package(pkg))
    )
    return [pkg for pkg in found if pkg is not None]


def summary_order(resolved: Sequence[ResolvedPackage]) -> List[ResolvedPackage]:
    """Runtime dependencies first, dev dependencies last, each alphabetical."""
    return sorted(resolved, key=lambda pkg: (pkg.is_dev, pkg.name))


def print_summary(
    resolved: Sequence[ResolvedPackage],
    types_packages: Sequence[ResolvedPackage],
    typed_project: bool,
) -> None:
    console.info(f"Installing {len(resolved)} + {len(types_packages)} packages...")
    companions = {pkg.name: pkg for pkg in types_packages}
    for pkg in summary_order(resolved):
        companion = companions.get(to_types_package_name(pkg.name))
        if pkg.typed or not typed_project:
            console.info(f"  {pkg.spec}")
        elif companion is not None:
            console.info(f"  {pkg.spec} + {companion.spec}")
        else:
            console.warn(f"  {pkg.spec} (not typed)")


async def add_packages(
    packages: Sequence[str],
    *,
    client: NpmRegistryClient,
    is_dev_option: bool = False,
    cwd: Optional[Path] = None,
) -> None:
    """Resolve ``packages``, record them in package.json and run the installer.

    Raises:
        SystemExit: On any fatal failure, after it has been reported.
    """
    directory = find_package_json_dir(cwd if cwd is not None else os.getcwd())
    if directory is None:
        _fail("package.json not found")
    try:
        package_json = PackageJson.load(directory)
    except ManifestError as e:
        _fail(str(e))
    typed_project = is_typed_project(package_json.content)

    requests = parse_packages(packages, is_dev_option)
    console.info(f"Resolving {len(requests)} packages...")
    versions = await resolve_versions(client, requests)
    resolved = await classify_packages(client, requests, versions)
    types_packages = await resolve_types_packages(client, resolved, typed_project)
    logger.debug("Resolved %s", ", ".join(pkg.spec for pkg in [*resolved, *types_packages]))

    apply_packages(package_json, resolved, types_packages)
    try:
        package_json.save()
    except ManifestError as e:
        _fail(str(e))

    print_summary(resolved, types_packages, typed_project)

    try:
        await asyncio.to_thread(run_install, directory)
    except InstallerError as e:
        console.error(str(e))
        sys.exit(e.returncode if e.returncode > 0 else ExitCodes.FAILURE.value)


async def install(
    packages: Sequence[str],
    *,
    client: NpmRegistryClient,
    is_dev_option: bool = False,
    cwd: Optional[Path] = None,
) -> None:
    """Entry point of ``lnpm install``."""
    if not packages:
        _fail("No packages specified")
    await add_packages(packages, client=client, is_dev_option=is_dev_option, cwd=cwd)
