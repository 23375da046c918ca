"""Configuración del servicio.

Centraliza variables de entorno (pydantic-settings) para la API, la CLI y los
adaptadores. La instancia es inmutable y se construye una sola vez por proceso
(`get_settings`); los componentes la reciben explícitamente.
"""

from __future__ import annotations

import ipaddress
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.models import SsrfPolicy

_MB = 1024 * 1024

_BLOCKED_IPV4 = (
    "0.0.0.0/8",  # this-network
    "10.0.0.0/8",
    "127.0.0.0/8",
    "169.254.0.0/16",
    "172.16.0.0/12",
    "192.168.0.0/16",
    "100.64.0.0/10",  # CGNAT
)

_BLOCKED_IPV6 = (
    "::1/128",
    "fe80::/10",
    "fc00::/7",
)


def _split_csv(value: str, *, lower: bool = False) -> tuple[str, ...]:
    items = (item.strip() for item in value.split(","))
    return tuple(item.lower() if lower else item for item in items if item)


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Los límites se expresan en MB / ms y se
    exponen en bytes / segundos mediante propiedades derivadas.
    """

    model_config = SettingsConfigDict(
        env_prefix="RENDER_SERVICE_",
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        frozen=True,
    )

    host: str = Field(
        default="0.0.0.0",
        min_length=1,
        description="Interfaz en la que escucha el servidor HTTP.",
    )
    port: int = Field(
        default=3001,
        ge=1,
        le=65535,
        description="Puerto del servidor HTTP.",
    )

    max_upload_mb: int = Field(
        default=25,
        ge=1,
        description="Tamaño máximo del fichero subido (MB).",
    )
    max_remote_mb: int = Field(
        default=10,
        ge=1,
        description="Tamaño máximo de la imagen remota descargada (MB).",
    )
    fetch_timeout_ms: int = Field(
        default=8000,
        gt=0,
        description="Timeout de reloj para la descarga de la imagen (ms).",
    )
    allowed_image_hosts: str = Field(
        default="",
        description="Allowlist opcional de hosts (separados por coma). Vacío = sin allowlist.",
    )
    cors_origins: str = Field(
        default="*",
        description="Orígenes CORS permitidos: '*' o lista separada por comas.",
    )

    placeholder_alt: str = Field(
        default="REPLACE_ME",
        min_length=1,
        description="Alt-text (Title o Description) que marca la imagen a sustituir.",
    )
    stamp_max_width: float = Field(
        default=260.0,
        gt=0,
        description="Ancho máximo del sello en la página (puntos PDF).",
    )
    stamp_max_height: float = Field(
        default=160.0,
        gt=0,
        description="Alto máximo del sello en la página (puntos PDF).",
    )
    stamp_margin: float = Field(
        default=36.0,
        ge=0,
        description="Margen entre el sello y la esquina superior derecha (puntos PDF).",
    )
    render_image_max_width_px: int = Field(
        default=500,
        ge=1,
        description="Ancho máximo (px) de las imágenes data-URI insertadas en /render.",
    )

    user_agent: str = Field(
        default="render-service/0.1 (+https://local)",
        min_length=1,
        description="User-Agent de las descargas remotas.",
    )
    log_level: str = Field(
        default="INFO",
        description="Nivel de logging (DEBUG, INFO, WARNING...).",
    )

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * _MB

    @property
    def max_remote_bytes(self) -> int:
        return self.max_remote_mb * _MB

    @property
    def fetch_timeout_seconds(self) -> float:
        return self.fetch_timeout_ms / 1000.0

    @property
    def image_host_allowlist(self) -> tuple[str, ...]:
        return _split_csv(self.allowed_image_hosts, lower=True)

    @property
    def cors_origin_list(self) -> list[str]:
        return list(_split_csv(self.cors_origins)) or ["*"]

    def build_ssrf_policy(self) -> SsrfPolicy:
        """Construye la política anti-SSRF a partir de la configuración."""

        return SsrfPolicy(
            allowed_schemes=frozenset({"http", "https"}),
            host_allowlist=self.image_host_allowlist,
            blocked_ipv4=tuple(ipaddress.IPv4Network(net) for net in _BLOCKED_IPV4),
            blocked_ipv6=tuple(ipaddress.IPv6Network(net) for net in _BLOCKED_IPV6),
        )


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Devuelve la configuración del proceso (se lee del entorno una vez)."""

    return AppSettings()
