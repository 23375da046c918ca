"""Modelos del dominio (Pydantic v2).

Describen *qué* datos circulan durante una petición (placeholder resuelto,
recurso descargado, posición del sello) y la política anti-SSRF compartida.
Ninguno sobrevive a la petición salvo `SsrfPolicy`, que es inmutable.
"""

from __future__ import annotations

from ipaddress import IPv4Network, IPv6Network

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class SsrfPolicy(BaseModel):
    """Política anti-SSRF del proceso.

    Se construye una vez al arrancar (ver `AppSettings.build_ssrf_policy`) y se
    comparte en modo solo-lectura entre peticiones concurrentes.
    """

    model_config = ConfigDict(frozen=True)

    allowed_schemes: frozenset[str] = Field(
        default=frozenset({"http", "https"}),
        description="Esquemas aceptados (sin ':').",
    )
    host_allowlist: tuple[str, ...] = Field(
        default=(),
        description="Hosts permitidos (y sus subdominios). Vacío = sin allowlist.",
    )
    blocked_ipv4: tuple[IPv4Network, ...] = Field(
        default=(),
        description="Rangos IPv4 rechazados cuando el host es una IP literal.",
    )
    blocked_ipv6: tuple[IPv6Network, ...] = Field(
        default=(),
        description="Rangos IPv6 rechazados cuando el host es una IP literal.",
    )


class FetchedResource(BaseModel):
    """Recurso remoto descargado (vive solo durante la petición)."""

    data: bytes = Field(..., description="Cuerpo de la respuesta.")
    content_type: str = Field(
        default="",
        description="Content-Type declarado por el servidor (en minúsculas).",
    )
    source_url: str = Field(..., description="URL validada desde la que se descargó.")


class ImagePlaceholder(BaseModel):
    """Imagen marcadora localizada dentro del contenedor DOCX."""

    model_config = ConfigDict(frozen=True)

    alt_text: str = Field(..., min_length=1)
    containing_part: str = Field(..., description="Parte XML donde está el dibujo.")
    relationship_id: str = Field(..., description="Id de relación (r:embed).")
    resolved_media_path: str = Field(..., description="Entrada del contenedor con el binario.")

    def describe(self) -> str:
        return f"{self.containing_part} -> {self.resolved_media_path} ({self.relationship_id})"


class PatchResult(BaseModel):
    """Resultado de `ContainerPatcher.patch_image`.

    Si no se encontró el placeholder, `data` son los bytes originales sin tocar.
    """

    data: bytes
    placeholder: ImagePlaceholder | None = None

    @property
    def replaced(self) -> bool:
        return self.placeholder is not None


class StampPlacement(BaseModel):
    """Caja del sello en espacio de usuario PDF (origen abajo-izquierda)."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    draw_width: float = Field(..., gt=0)
    draw_height: float = Field(..., gt=0)
    scale: float = Field(..., gt=0, le=1)


class ServiceHealth(BaseModel):
    """Payload de `/health`: solo límites configurados."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    service: str = "render-service"
    max_upload_mb: int = Field(..., alias="maxUploadMB")
    max_remote_mb: int = Field(..., alias="maxRemoteMB")
    timeout_ms: int = Field(..., alias="timeoutMs")
