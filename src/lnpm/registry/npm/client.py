"""npm registry client: packuments and per-version manifests."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp

from lnpm.common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from lnpm.constants import Constants

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """The registry could not be reached or returned an unusable response."""


class PackageNotFoundError(RegistryError):
    """The registry answered 404 for a package or version."""

    def __init__(self, name: str, version: Optional[str] = None):
        self.name = name
        self.version = version
        target = f"{name}@{version}" if version else name
        super().__init__(f"Package {target} not found")


def escape_package_name(name: str) -> str:
    """Escape a package name for use as a registry path segment.

    ``@scope/name`` becomes ``@scope%2fname``; the leading ``@`` stays literal.
    """
    return quote(name, safe="@").replace("%2F", "%2f")


class NpmRegistryClient:
    """Async reader for an npm-compatible registry.

    One ``aiohttp.ClientSession`` is shared by every request issued while the
    client is open, so concurrent lookups reuse connections.
    """

    def __init__(
        self,
        registry_url: str = Constants.REGISTRY_URL_NPM,
        timeout: int = Constants.REQUEST_TIMEOUT,
    ):
        """Initialize the client.

        Args:
            registry_url: Registry base URL.
            timeout: Total per-request timeout in seconds.
        """
        self._registry_url = registry_url.rstrip("/") + "/"
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def registry_url(self) -> str:
        return self._registry_url

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "NpmRegistryClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    def packument_url(self, name: str) -> str:
        return self._registry_url + escape_package_name(name)

    def manifest_url(self, name: str, version: str) -> str:
        return f"{self.packument_url(name)}/{quote(str(version), safe='')}"

    async def fetch_packument(self, name: str) -> Dict[str, Any]:
        """Return the packument (``versions`` and ``dist-tags``) for ``name``.

        Raises:
            PackageNotFoundError: The registry has no such package.
            RegistryError: Transport failure or unexpected response.
        """
        return await self._get_json(
            self.packument_url(name),
            headers={"Accept": Constants.PACKUMENT_ACCEPT},
            name=name,
        )

    async def fetch_manifest(self, name: str, version: str) -> Dict[str, Any]:
        """Return the manifest of one published version of ``name``.

        Raises:
            PackageNotFoundError: The package or version does not exist.
            RegistryError: Transport failure or unexpected response.
        """
        return await self._get_json(
            self.manifest_url(name, version),
            headers={"Accept": Constants.MANIFEST_ACCEPT},
            name=name,
            version=str(version),
        )

    async def _get_json(
        self,
        url: str,
        *,
        headers: Dict[str, str],
        name: str,
        version: Optional[str] = None,
    ) -> Dict[str, Any]:
        if self._session is None:
            await self.start()
        assert self._session is not None

        target = safe_url(url)
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="client",
                    action="GET",
                    target=target,
                    package_manager="npm",
                ),
            )

        with Timer() as timer:
            try:
                async with self._session.get(url, headers=headers) as response:
                    status = response.status
                    if status == 404:
                        logger.debug("HTTP 404 for %s", target)
                        raise PackageNotFoundError(name, version)
                    if status < 200 or status >= 300:
                        logger.warning(
                            "HTTP non-2xx received",
                            extra=extra_context(
                                event="http_response",
                                outcome="non_2xx",
                                status_code=status,
                                target=target,
                                package_manager="npm",
                            ),
                        )
                        raise RegistryError(f"Registry returned HTTP {status} for {name}")
                    body = await response.text()
            except asyncio.TimeoutError as exc:
                logger.error("npm request timed out: %s", target)
                raise RegistryError(f"Registry request timed out for {name}") from exc
            except aiohttp.ClientError as exc:
                logger.error("npm connection error: %s", exc)
                raise RegistryError(f"Registry connection error for {name}: {exc}") from exc

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response ok",
                extra=extra_context(
                    event="http_response",
                    outcome="success",
                    status_code=status,
                    duration_ms=timer.duration_ms(),
                    target=target,
                    package_manager="npm",
                ),
            )

        try:
            data = json.loads(body)
        except json.JSONDecodeError as exc:
            logger.warning("Couldn't decode JSON from %s", target)
            raise RegistryError(f"Invalid JSON from registry for {name}") from exc
        if not isinstance(data, dict):
            raise RegistryError(f"Unexpected registry document for {name}")
        return data
