"""Contrato de descarga de recursos remotos.

La URL que recibe `fetch` ya pasó por `SsrfGuard`; el fetcher solo aplica
timeout, límite de bytes y aceptación de 2xx.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import FetchedResource


@runtime_checkable
class ResourceFetcher(Protocol):
    """Contrato mínimo para descargar la imagen de `obraz_url`.

    Reglas de diseño:
    - `fetch` es asíncrono porque hace I/O de red.
    - Cualquier fallo (timeout, tamaño, status) se expone como `FetchError`.
    """

    async def fetch(self, safe_url: str) -> FetchedResource:
        """Descarga `safe_url` y devuelve el cuerpo con su content-type."""

        ...
