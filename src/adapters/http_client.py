"""Wrapper de httpx para descargar la imagen remota.

- Estandariza timeouts y headers en un único builder.
- `HttpResourceFetcher` implementa `core.interfaces.fetcher.ResourceFetcher`
  con timeout de reloj, límite de bytes aplicado en streaming y solo 2xx.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from core.config import AppSettings
from core.domain.errors import FetchError
from core.domain.models import FetchedResource
from core.interfaces.fetcher import ResourceFetcher

LOGGER = logging.getLogger(__name__)


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    No sigue redirecciones: el destino de un 3xx no ha pasado por la guarda
    anti-SSRF, así que se trata como status no-2xx.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "image/png,image/jpeg,image/*;q=0.9,*/*;q=0.5",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.fetch_timeout_seconds),
        follow_redirects=False,
        headers=headers,
        transport=transport,
    )


class HttpResourceFetcher(ResourceFetcher):
    """GET único, acotado en tiempo y en bytes."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._transport = transport

    async def fetch(self, safe_url: str) -> FetchedResource:
        timeout = self._settings.fetch_timeout_seconds
        try:
            return await asyncio.wait_for(self._download(safe_url), timeout=timeout)
        except asyncio.TimeoutError:
            LOGGER.warning("Fetch of %s timed out after %.1fs", safe_url, timeout)
            raise FetchError(f"Timeout of {self._settings.fetch_timeout_ms}ms exceeded") from None
        except httpx.InvalidURL as exc:
            LOGGER.warning("Unusable URL %s: %s", safe_url, exc)
            raise FetchError(f"Invalid request URL: {exc}") from exc
        except httpx.HTTPError as exc:
            LOGGER.warning("Fetch of %s failed: %s", safe_url, exc)
            raise FetchError(f"Request failed: {exc}") from exc

    async def _download(self, url: str) -> FetchedResource:
        cap = self._settings.max_remote_bytes
        async with build_async_client(self._settings, transport=self._transport) as client:
            async with client.stream("GET", url) as response:
                if not 200 <= response.status_code < 300:
                    raise FetchError(f"Request failed with status code {response.status_code}")

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > cap:
                    raise FetchError(f"maxContentLength size of {cap} exceeded")

                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > cap:
                        raise FetchError(f"maxContentLength size of {cap} exceeded")

                content_type = response.headers.get("content-type", "").lower()

        LOGGER.debug("Fetched %d bytes (%s) from %s", len(body), content_type or "?", url)
        return FetchedResource(data=bytes(body), content_type=content_type, source_url=url)
