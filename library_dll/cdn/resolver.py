"""CDN resolution for production builds.

Maps a library name and version range to a public CDN URL and the global
symbol the library's UMD build defines. This is best-effort: a library is
only resolved when its global symbol is configured and the CDN answers the
probe. The bundle cache never depends on it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CdnLibrary:
    """A library served from a CDN."""

    name: str
    url: str
    global_name: str


class CdnResolver(Protocol):
    """Resolves libraries to CDN-hosted copies."""

    async def resolve(self, name: str, version_range: str) -> CdnLibrary | None: ...


class UnpkgResolver:
    """Resolver probing an unpkg-style CDN with HEAD requests.

    Example:
        >>> resolver = UnpkgResolver(globals={"react": "React"})
        >>> library = await resolver.resolve("react", "^16.0.0")
        >>> library.global_name
        'React'
    """

    def __init__(
        self,
        url_template: str = "https://unpkg.com/{name}@{version}",
        globals: Mapping[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize resolver.

        Args:
            url_template: CDN URL with {name} and {version} placeholders
            globals: Global symbol per library name
            client: HTTP client to reuse (a short-lived one is created otherwise)
        """
        self.url_template = url_template
        self.globals = dict(globals or {})
        self._client = client

    def url_for(self, name: str, version_range: str) -> str:
        return self.url_template.format(name=name, version=quote(version_range, safe=""))

    async def _probe(self, client: httpx.AsyncClient, url: str) -> str | None:
        response = await client.head(url, follow_redirects=True)
        if response.status_code != 200:
            logger.warning(f"CDN probe failed for {url}: {response.status_code}")
            return None
        return str(response.url)

    async def resolve(self, name: str, version_range: str) -> CdnLibrary | None:
        """Resolve one library.

        Args:
            name: Library name from package.json
            version_range: Declared version range

        Returns:
            CDN library, or None if it cannot be served from the CDN
        """
        global_name = self.globals.get(name)
        if not global_name:
            logger.debug(f"No global symbol configured for {name}, bundling it locally")
            return None

        url = self.url_for(name, version_range)
        try:
            if self._client is not None:
                resolved_url = await self._probe(self._client, url)
            else:
                async with httpx.AsyncClient() as client:
                    resolved_url = await self._probe(client, url)
        except httpx.HTTPError as e:
            logger.warning(f"CDN probe error for {name}: {e}")
            return None

        if resolved_url is None:
            return None
        logger.debug(f"Resolved {name}@{version_range} -> {resolved_url}")
        return CdnLibrary(name=name, url=resolved_url, global_name=global_name)
