"""Command-line specifier parsing."""

import re

from lnpm.common import console
from lnpm.constants import Constants
from lnpm.result import Result, failure, success

from .models import PackageRequest

# dev: prefix, lazily matched name (may itself contain "@" and "/"), then an
# optional trailing @version.
_SPECIFIER_RE = re.compile(r"^(dev:)?(.+?)(?:@(.+))?$")
_SCOPED_RE = re.compile(r"^@.*/.*$")


def parse_package(token: str, is_dev_option: bool) -> Result[PackageRequest]:
    """Parse one CLI token such as ``dev:@scope/pkg@^1.2.0``.

    Args:
        token: Raw command-line token.
        is_dev_option: Whether -D/--dev was passed for the whole invocation.

    Returns:
        Result wrapping the PackageRequest, or a failure for malformed tokens.
    """
    if token.startswith(Constants.DEV_PREFIX):
        if is_dev_option:
            console.warn("dev: prefix is ignored when -D or --dev is specified")
        is_dev = True
    else:
        is_dev = is_dev_option

    match = _SPECIFIER_RE.match(token)
    if not match:
        return failure(f"Invalid package name: {token}")
    _, name, version = match.groups()
    return success(
        PackageRequest(
            name=name,
            is_dev=is_dev,
            version=version if version is not None else Constants.DEFAULT_VERSION_SPEC,
        )
    )


def to_types_package_name(package_name: str) -> str:
    """Map ``foo`` to ``@types/foo`` and ``@scope/name`` to ``@types/scope__name``."""
    if _SCOPED_RE.match(package_name):
        unscoped = package_name[1:].replace("/", "__", 1)
        return f"{Constants.TYPES_SCOPE}/{unscoped}"
    return f"{Constants.TYPES_SCOPE}/{package_name}"


def is_types_package(package_name: str) -> bool:
    return package_name.startswith(Constants.TYPES_SCOPE + "/")
