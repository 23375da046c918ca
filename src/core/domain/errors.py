"""Errores del dominio.

Cada error lleva el código HTTP con el que se expone y, opcionalmente, un
`details` serializable. Ninguno se reintenta: son terminales para la petición.
"""

from __future__ import annotations

from typing import Any


class RenderServiceError(Exception):
    """Base de los errores del servicio (500 si no se clasifica)."""

    status_code: int = 500

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class InputError(RenderServiceError):
    """Falta un fichero/campo, JSON inválido o documento ilegible."""

    status_code = 400


class UploadTooLarge(RenderServiceError):
    status_code = 413

    def __init__(self, limit_bytes: int) -> None:
        super().__init__(
            "Upload rejected",
            details=f"File too large (limit {limit_bytes} bytes)",
        )
        self.limit_bytes = limit_bytes


class SsrfRejected(RenderServiceError):
    """La URL no pasa la política anti-SSRF; `reason` explica el motivo."""

    status_code = 400

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class FetchError(RenderServiceError):
    """Fallo de descarga: timeout, límite de tamaño o status no-2xx (sin distinguir)."""

    status_code = 502


class PlaceholderNotFound(RenderServiceError):
    status_code = 400

    def __init__(self, alt_text: str) -> None:
        super().__init__(
            "Placeholder image not found",
            details=(
                f'No image with alt-text "{alt_text}" was found. Set the image alt text '
                f'(Title or Description) in Word to exactly "{alt_text}".'
            ),
        )
        self.alt_text = alt_text


class TemplateRenderError(RenderServiceError):
    """El motor de plantillas falló; `details` lleva su información estructurada."""

    status_code = 500
