"""Guarda anti-SSRF para `obraz_url`.

Reglas (en orden):
- URL parseable, con host y puerto válido
- esquema http/https
- allowlist de hosts (si está configurada)
- bloqueo de `localhost` y `*.localhost`
- bloqueo de IPs literales privadas/loopback/link-local/CGNAT

Limitación conocida: no se resuelve DNS. Un nombre que apunte a una IP
privada pasa la validación.
"""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
from urllib.parse import urlsplit

import httpx

from core.domain.errors import SsrfRejected
from core.domain.models import SsrfPolicy

LOGGER = logging.getLogger(__name__)

# Formas literales IPv4 que aceptan los parsers de URL: `127.1`, `0x7f.0.0.1`, `2130706433`.
_IPV4_SHORTHAND_RE = re.compile(r"^(?:0x[0-9a-f]*|\d+)(?:\.(?:0x[0-9a-f]*|\d+)){0,3}\.?$")


def _parse_ipv4_literal(host: str) -> ipaddress.IPv4Address | None:
    try:
        return ipaddress.IPv4Address(host)
    except ValueError:
        pass
    if not _IPV4_SHORTHAND_RE.match(host):
        return None
    try:
        return ipaddress.IPv4Address(socket.inet_aton(host.rstrip(".")))
    except OSError:
        return None


def _parse_ipv6_literal(host: str) -> ipaddress.IPv6Address | None:
    if ":" not in host:
        return None
    try:
        return ipaddress.IPv6Address(host.split("%", 1)[0])
    except ValueError:
        return None


class SsrfGuard:
    """Valida URLs candidatas contra una `SsrfPolicy` inmutable."""

    def __init__(self, policy: SsrfPolicy) -> None:
        self._policy = policy

    @property
    def policy(self) -> SsrfPolicy:
        return self._policy

    def validate(self, url: str) -> str:
        """Devuelve la URL normalizada o lanza `SsrfRejected` con el motivo."""

        try:
            parts = urlsplit(str(url).strip())
            parts.port  # valida el puerto
            # Lo que httpx no sabe parsear (p. ej. hosts IDNA inválidos) tampoco pasa.
            httpx.URL(str(url).strip())
        except (ValueError, httpx.InvalidURL):
            raise self._reject(url, "Invalid URL for obraz_url") from None
        if not parts.scheme or not parts.netloc:
            raise self._reject(url, "Invalid URL for obraz_url")

        if parts.scheme.lower() not in self._policy.allowed_schemes:
            raise self._reject(url, "Only http/https URLs are allowed for obraz_url")

        host = (parts.hostname or "").lower()
        if not host:
            raise self._reject(url, "Invalid URL hostname")

        allowlist = self._policy.host_allowlist
        if allowlist and not any(host == allowed or host.endswith(f".{allowed}") for allowed in allowlist):
            raise self._reject(url, "Host not allowed for obraz_url")

        bare_host = host.rstrip(".")
        if bare_host == "localhost" or bare_host.endswith(".localhost"):
            raise self._reject(url, "Localhost is not allowed for obraz_url")

        ipv4 = _parse_ipv4_literal(host)
        if ipv4 is not None and self._is_blocked_ipv4(ipv4):
            raise self._reject(url, "Private IPv4 is not allowed for obraz_url")

        ipv6 = _parse_ipv6_literal(host)
        if ipv6 is not None and self._is_blocked_ipv6(ipv6):
            raise self._reject(url, "Private IPv6 is not allowed for obraz_url")

        return parts.geturl()

    def _is_blocked_ipv4(self, address: ipaddress.IPv4Address) -> bool:
        return any(address in network for network in self._policy.blocked_ipv4)

    def _is_blocked_ipv6(self, address: ipaddress.IPv6Address) -> bool:
        if address.ipv4_mapped is not None and self._is_blocked_ipv4(address.ipv4_mapped):
            return True
        return any(address in network for network in self._policy.blocked_ipv6)

    @staticmethod
    def _reject(url: str, reason: str) -> SsrfRejected:
        LOGGER.warning("Rejected image URL %r: %s", url, reason)
        return SsrfRejected(reason)
