"""Resolución de la imagen marcadora a través de las relaciones OPC.

Flujo por parte candidata (cuerpo, cabeceras, pies, en ese orden):
1. Busca un `wp:docPr` cuyo `descr` o `title` sea exactamente el alt-text.
2. Toma el `a:blip/@r:embed` del mismo `w:drawing`.
3. Lo resuelve en `<dir>/_rels/<parte>.rels` hasta una entrada de media.

Si cualquier paso falla se abandona la parte y se prueba la siguiente. Solo
se devuelve la *primera* coincidencia: si varias imágenes comparten el
alt-text, las demás no se tocan.
"""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Mapping
from xml.etree import ElementTree as ET

from core.domain.models import ImagePlaceholder
from core.services.tag_repair import MAIN_DOCUMENT_PART

if TYPE_CHECKING:
    from core.services.container import DocumentContainer

LOGGER = logging.getLogger(__name__)

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
WP_NS = "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing"
A_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"

_DRAWING_TAG = f"{{{W_NS}}}drawing"
_DOC_PR_TAG = f"{{{WP_NS}}}docPr"
_BLIP_TAG = f"{{{A_NS}}}blip"
_EMBED_ATTR = f"{{{R_NS}}}embed"
_RELATIONSHIP_TAG = f"{{{PKG_REL_NS}}}Relationship"

_HEADER_RE = re.compile(r"^word/header(\d+)\.xml$")
_FOOTER_RE = re.compile(r"^word/footer(\d+)\.xml$")


@dataclass(frozen=True)
class Relationship:
    """Una relación OPC de la tabla de una parte."""

    r_id: str
    target: str
    rel_type: str = ""
    is_external: bool = False


def candidate_parts(names: Iterable[str]) -> list[str]:
    """Partes a inspeccionar en orden de prioridad fijo.

    Cuerpo principal, luego cabeceras y pies en orden numérico ascendente
    (`header2` antes que `header10`).
    """

    names = list(names)
    ordered: list[str] = [MAIN_DOCUMENT_PART] if MAIN_DOCUMENT_PART in names else []
    for pattern in (_HEADER_RE, _FOOTER_RE):
        numbered = []
        for name in names:
            match = pattern.match(name)
            if match:
                numbered.append((int(match.group(1)), name))
        ordered.extend(name for _, name in sorted(numbered))
    return ordered


def relationships_path_for(part_name: str) -> str:
    """`word/header1.xml` -> `word/_rels/header1.xml.rels`."""

    folder, base = posixpath.split(part_name)
    return posixpath.join(folder, "_rels", f"{base}.rels")


def load_relationship_table(parts: Mapping[str, bytes], part_name: str) -> dict[str, Relationship]:
    """Carga la tabla de relaciones de una parte (vacía si no existe o no parsea)."""

    payload = parts.get(relationships_path_for(part_name))
    if payload is None:
        return {}
    try:
        root = ET.fromstring(payload)
    except ET.ParseError:
        LOGGER.warning("Unparsable relationships for %s", part_name)
        return {}

    table: dict[str, Relationship] = {}
    for rel_el in root.iter(_RELATIONSHIP_TAG):
        r_id = rel_el.get("Id")
        if not r_id:
            continue
        table[r_id] = Relationship(
            r_id=r_id,
            target=rel_el.get("Target", ""),
            rel_type=rel_el.get("Type", ""),
            is_external=rel_el.get("TargetMode") == "External",
        )
    return table


def resolve_media_path(part_name: str, target: str, entries: Mapping[str, bytes]) -> str | None:
    """Normaliza el `Target` de una relación a una entrada existente.

    Convenciones aceptadas (relativas al directorio de la parte, `word/`):
    - `media/image1.png`     -> `word/media/image1.png`
    - `../media/image1.png`  -> `word/media/image1.png`
    - cualquier otra ruta relativa, resuelta contra el directorio
    - `/word/media/image1.png` (absoluta dentro del paquete)
    """

    if not target:
        return None
    base_dir = posixpath.dirname(part_name)

    candidates: list[str] = []
    if target.startswith("/"):
        candidates.append(target.lstrip("/"))
    else:
        if target.startswith("media/"):
            candidates.append(posixpath.join(base_dir, target))
        elif target.startswith("../media/"):
            candidates.append(posixpath.join(base_dir, "media", posixpath.basename(target)))
        candidates.append(posixpath.normpath(posixpath.join(base_dir, target)))

    for candidate in candidates:
        if candidate in entries:
            return candidate
    return None


def find_embed_id(xml_text: str, alt_text: str) -> str | None:
    """Devuelve el `r:embed` de la primera imagen cuyo alt-text coincide.

    El blip se busca solo dentro del `w:drawing` que contiene el `wp:docPr`.
    """

    try:
        root = ET.fromstring(xml_text.encode("utf-8"))
    except ET.ParseError:
        return None

    for drawing in root.iter(_DRAWING_TAG):
        doc_pr = drawing.find(f".//{_DOC_PR_TAG}")
        if doc_pr is None:
            continue
        if alt_text not in (doc_pr.get("descr"), doc_pr.get("title")):
            continue
        for blip in drawing.iter(_BLIP_TAG):
            r_id = blip.get(_EMBED_ATTR)
            if r_id:
                return r_id
    return None


class RelationshipResolver:
    """Localiza la entrada de media referenciada por la imagen marcadora."""

    def resolve(self, container: DocumentContainer, alt_text: str) -> ImagePlaceholder | None:
        markup = container.normalized_markup()
        for part_name in candidate_parts(markup):
            placeholder = self._resolve_in_part(container.entries, part_name, markup[part_name], alt_text)
            if placeholder is not None:
                return placeholder
        return None

    def _resolve_in_part(
        self,
        entries: Mapping[str, bytes],
        part_name: str,
        xml_text: str,
        alt_text: str,
    ) -> ImagePlaceholder | None:
        r_id = find_embed_id(xml_text, alt_text)
        if r_id is None:
            return None

        relationship = load_relationship_table(entries, part_name).get(r_id)
        if relationship is None or relationship.is_external:
            LOGGER.debug("No internal relationship %s in %s", r_id, part_name)
            return None

        media_path = resolve_media_path(part_name, relationship.target, entries)
        if media_path is None:
            LOGGER.debug("Target %s of %s missing from container", relationship.target, part_name)
            return None

        return ImagePlaceholder(
            alt_text=alt_text,
            containing_part=part_name,
            relationship_id=r_id,
            resolved_media_path=media_path,
        )
