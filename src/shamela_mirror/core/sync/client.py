"""
Async client for the remote patch API.

API Endpoints:
- Master: GET {base_url}/patches/master?api_key=K&version=V
- Book:   GET {base_url}/patches/book-updates/{id}?api_key=K&major_release=M&minor_release=N

Both answer ``204 No Content`` when the local cursor is current, or
``200`` with a JSON payload pointing at patch archives:

    {"patch_url": "https://.../master.zip", "Version": 12}

    {
      "major_release_url": "https://.../6387-major.zip",
      "minor_release_url": "https://.../6387-minor.zip",
      "major_release": 3,
      "minor_release": 7
    }

Requests are never retried here; any failure is raised as NetworkError
and ends the current sync.

Example:
    >>> async with PatchClient(base_url, api_key) as client:
    ...     info = await client.fetch_master_patch(MasterCursor(version=0))
    ...     if info is not None:
    ...         archive = await client.download(info.patch_url)
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from shamela_mirror.core.exceptions import NetworkError
from shamela_mirror.core.sync.models import (
    BookCursor,
    BookPatchInfo,
    MasterCursor,
    MasterPatchInfo,
)

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=BaseModel)

NO_UPDATE_STATUS = 204
DEFAULT_TIMEOUT = 60.0


class PatchClient:
    """
    Client for the patch API and archive downloads.

    Owns an ``httpx.AsyncClient`` unless one is passed in, in which case the
    caller keeps ownership (useful for tests with ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: API root, e.g. "https://dev.shamela.ws/api/v1"
            api_key: API key sent as the ``api_key`` query parameter
            timeout: Request timeout in seconds
            http_client: Optional pre-configured async client
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def __aenter__(self) -> PatchClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    async def fetch_master_patch(self, cursor: MasterCursor) -> MasterPatchInfo | None:
        """
        Ask for master updates newer than ``cursor``.

        Returns:
            Patch info, or None if the master dataset is up to date

        Raises:
            NetworkError: On transport errors, unexpected statuses or payloads
        """
        return await self._get_patch(
            "/patches/master",
            {"version": cursor.version},
            MasterPatchInfo,
        )

    async def fetch_book_patch(self, book_id: int, cursor: BookCursor) -> BookPatchInfo | None:
        """
        Ask for releases of one book newer than ``cursor``.

        Returns:
            Patch info, or None if the book is up to date

        Raises:
            NetworkError: On transport errors, unexpected statuses or payloads
        """
        return await self._get_patch(
            f"/patches/book-updates/{book_id}",
            {"major_release": cursor.major, "minor_release": cursor.minor},
            BookPatchInfo,
        )

    async def download(self, url: str) -> bytes:
        """
        Download a patch archive.

        Raises:
            NetworkError: If the download fails or returns a non-success status
        """
        logger.info("Downloading patch archive %s", _redact(url))
        try:
            response = await self._http.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"Archive download failed with HTTP {e.response.status_code}",
                url=_redact(url),
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Archive download failed: {e}", url=_redact(url)) from e

        logger.debug("Downloaded %d bytes from %s", len(response.content), _redact(url))
        return response.content

    async def _get_patch(self, path: str, params: dict[str, Any], model: type[P]) -> P | None:
        url = f"{self.base_url}{path}"
        query = {"api_key": self.api_key, **params}
        logger.debug("Requesting %s with %s", url, params)

        try:
            response = await self._http.get(url, params=query)
        except httpx.HTTPError as e:
            raise NetworkError(f"Patch API unreachable: {e}", url=url) from e

        if response.status_code == NO_UPDATE_STATUS:
            return None

        if not response.is_success:
            raise NetworkError(
                f"Patch API returned HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise NetworkError(f"Unexpected patch API payload: {e}", url=url) from e


def _redact(url: str) -> str:
    # Signed archive URLs carry credentials in the query string
    return url.split("?", 1)[0]


__all__ = ["PatchClient", "NO_UPDATE_STATUS"]
