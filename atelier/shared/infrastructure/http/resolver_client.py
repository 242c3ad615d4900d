"""
Remote resolver client.

One HTTP GET per call, returning the body as text. Retry policy belongs to
the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

import httpx

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The resolver could not be fetched (network, timeout or non-2xx status)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ResolverClient:
    """Thin async wrapper around ``httpx.AsyncClient`` for text GETs."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        app_name: str = "Atelier",
    ):
        client_kwargs: Dict[str, Any] = {
            "headers": {"User-Agent": f"{app_name}/1.0"},
            "follow_redirects": True,
        }
        # httpx treats timeout=None as "no timeout", so only pass explicit values
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)

    async def fetch_text(self, url: Union[httpx.URL, str]) -> str:
        """GET ``url`` and return the full body decoded as UTF-8.

        Raises:
            TransportError: On any transport failure or non-2xx response
        """
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"Resolver returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"Resolver request failed: {type(e).__name__}: {e}") from e

        return response.content.decode("utf-8", errors="replace")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ResolverClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
