"""Contenedor DOCX (zip) y parcheo quirúrgico de una entrada de media.

El contenedor se construye desde los bytes subidos en cada petición, se muta
en memoria y se vuelve a serializar. Toda entrada que no sea el objetivo del
parche conserva su contenido byte a byte y su posición en el índice.
"""

from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass, field

from core.domain.errors import InputError
from core.domain.models import PatchResult
from core.services.relationships import RelationshipResolver, candidate_parts
from core.services.tag_repair import repair_markup_parts

LOGGER = logging.getLogger(__name__)

_DEFAULT_DATE_TIME = (1980, 1, 1, 0, 0, 0)


@dataclass
class DocumentContainer:
    """Entradas de un zip en su orden original, con sus metadatos."""

    entries: dict[str, bytes]
    infos: dict[str, zipfile.ZipInfo] = field(default_factory=dict)
    comment: bytes = b""
    _markup: dict[str, str] | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_bytes(cls, data: bytes) -> "DocumentContainer":
        try:
            archive = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as exc:
            raise InputError("Invalid DOCX container", details=str(exc)) from exc

        with archive:
            infos = archive.infolist()
            names = [info.filename for info in infos]
            if len(names) != len(set(names)):
                raise InputError("Invalid DOCX container", details="Duplicate entry names")
            try:
                entries = {info.filename: archive.read(info) for info in infos}
            except (zipfile.BadZipFile, RuntimeError, NotImplementedError, OSError) as exc:
                raise InputError("Invalid DOCX container", details=str(exc)) from exc
            comment = archive.comment

        LOGGER.debug("Loaded %d container entries", len(entries))
        return cls(
            entries=entries,
            infos={info.filename: info for info in infos},
            comment=comment,
        )

    def normalized_markup(self) -> dict[str, str]:
        """Texto reparado de cuerpo/cabeceras/pies (solo para escanear)."""

        if self._markup is None:
            self._markup = repair_markup_parts(self.entries)
        return self._markup

    def replace(self, name: str, payload: bytes) -> None:
        if name not in self.entries:
            raise KeyError(name)
        self.entries[name] = payload
        self._markup = None

    def to_bytes(self) -> bytes:
        """Serializa con DEFLATE y las fechas originales (salida determinista)."""

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.comment = self.comment
            for name, payload in self.entries.items():
                source = self.infos.get(name)
                info = zipfile.ZipInfo(name, date_time=source.date_time if source else _DEFAULT_DATE_TIME)
                info.compress_type = zipfile.ZIP_DEFLATED
                if source is not None:
                    info.external_attr = source.external_attr
                    info.create_system = source.create_system
                archive.writestr(info, payload)
        return buffer.getvalue()


class ContainerPatcher:
    """Sustituye el binario de la imagen marcada con un alt-text."""

    def __init__(self, resolver: RelationshipResolver | None = None) -> None:
        self._resolver = resolver or RelationshipResolver()

    def patch_image(self, container_bytes: bytes, alt_text: str, image_bytes: bytes) -> PatchResult:
        """Reemplaza la media resuelta; si no hay placeholder devuelve los bytes originales."""

        container = DocumentContainer.from_bytes(container_bytes)
        placeholder = self._resolver.resolve(container, alt_text)
        if placeholder is None:
            LOGGER.warning(
                "Alt-text %r not found. Checked: %s",
                alt_text,
                candidate_parts(container.normalized_markup()),
            )
            return PatchResult(data=container_bytes)

        container.replace(placeholder.resolved_media_path, image_bytes)
        return PatchResult(data=container.to_bytes(), placeholder=placeholder)

    def repair_template(self, container_bytes: bytes) -> bytes:
        """Une los marcadores fragmentados de todas las partes de marcado."""

        container = DocumentContainer.from_bytes(container_bytes)
        for name, xml_text in container.normalized_markup().items():
            container.entries[name] = xml_text.encode("utf-8")
        return container.to_bytes()
