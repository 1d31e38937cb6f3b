"""IPFS metadata resolution over an ordered list of HTTP gateways.

Resolution never raises for network or content errors: a token whose
metadata cannot be fetched is imported with placeholder content instead.
"""

from __future__ import annotations

from types import TracebackType
from typing import TYPE_CHECKING, Any

import httpx
import structlog

if TYPE_CHECKING:
    from napft.config import Settings

logger = structlog.get_logger()

IPFS_SCHEME = "ipfs://"


def clean_hash(uri: str) -> str:
    """Strip ``ipfs://`` (and a leading ``ipfs/``) from a content reference."""
    value = uri.strip()
    if value.startswith(IPFS_SCHEME):
        value = value[len(IPFS_SCHEME) :]
    if value.startswith("ipfs/"):
        value = value[len("ipfs/") :]
    return value


class MetadataResolver:
    """Fetch token metadata documents and probe image URLs.

    The configured gateway host is tried first (with the auth token, when
    set), then each fallback gateway in order.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self.primary_gateway = f"https://{settings.ipfs_gateway_host}/ipfs/"
        self.gateways = [self.primary_gateway]
        for gateway in settings.ipfs_fallback_gateways:
            if gateway not in self.gateways:
                self.gateways.append(gateway)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.ipfs_timeout_seconds, follow_redirects=True)

    async def __aenter__(self) -> MetadataResolver:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, gateway: str) -> dict[str, str]:
        if gateway == self.primary_gateway and self.settings.ipfs_auth_token:
            return {"Authorization": f"Bearer {self.settings.ipfs_auth_token}"}
        return {}

    async def fetch_metadata(self, uri: str) -> dict[str, Any] | None:
        """Return the metadata JSON object for ``uri``, or None if no gateway serves it."""
        content_hash = clean_hash(uri)
        if not content_hash:
            return None

        for gateway in self.gateways:
            url = f"{gateway}{content_hash}"
            try:
                response = await self._client.get(url, headers=self._headers(gateway))
                response.raise_for_status()
                document = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.debug("ipfs_gateway_failed", url=url, error=str(exc))
                continue
            if isinstance(document, dict):
                logger.debug("ipfs_metadata_fetched", url=url)
                return document
            logger.debug("ipfs_metadata_not_object", url=url)

        logger.warning("ipfs_metadata_unavailable", content_hash=content_hash)
        return None

    async def resolve_image(self, image: str | None) -> str | None:
        """Turn an ``ipfs://`` image reference into a reachable gateway URL.

        Non-IPFS URLs are returned unchanged. When no gateway answers the HEAD
        probe, the primary gateway URL is returned anyway.
        """
        if not image:
            return None
        if not image.startswith(IPFS_SCHEME):
            return image

        content_hash = clean_hash(image)
        for gateway in self.gateways:
            url = f"{gateway}{content_hash}"
            try:
                response = await self._client.head(url, timeout=self.settings.ipfs_probe_timeout_seconds)
                response.raise_for_status()
            except httpx.HTTPError:
                continue
            return url
        return f"{self.primary_gateway}{content_hash}"
