"""Reparación de marcadores fragmentados en WordprocessingML.

Word parte un mismo texto en varios `<w:r>` consecutivos al editar, de modo
que un marcador como `{{nombre}}` puede quedar repartido entre runs. Aquí se
eliminan las fronteras `</w:t></w:r><w:r><w:t>` (y la variante con
`<w:proofErr/>` en medio) hasta llegar a un punto fijo.

El XML se trata como texto: la transformación es local y no necesita árbol.
"""

from __future__ import annotations

import logging
import re
from typing import Mapping

LOGGER = logging.getLogger(__name__)

MAIN_DOCUMENT_PART = "word/document.xml"

_MARKUP_PART_RE = re.compile(r"^word/(?:document|header\d+|footer\d+)\.xml$")

# `<w:r>` / `<w:t>` de apertura exactos: nunca `<w:rPr>`, `<w:tab/>`, `<w:tbl>` ni `<w:t/>`.
_RUN_OPEN = r"<w:r(?:\s[^>]*)?(?<!/)>"
_TEXT_OPEN = r"<w:t(?:\s[^>]*)?(?<!/)>"

_RUN_BOUNDARY_RE = re.compile(
    rf"</w:t>\s*</w:r>\s*(?:{_RUN_OPEN}\s*)*{_TEXT_OPEN}"
)
_PROOF_BOUNDARY_RE = re.compile(
    rf"</w:t>\s*</w:r>\s*<w:proofErr[^>]*/>\s*{_RUN_OPEN}\s*{_TEXT_OPEN}"
)


def normalize(xml_text: str) -> str:
    """Une runs adyacentes hasta que el texto deja de cambiar.

    Idempotente: `normalize(normalize(x)) == normalize(x)`.
    """

    while True:
        previous = xml_text
        xml_text = _RUN_BOUNDARY_RE.sub("", xml_text)
        xml_text = _PROOF_BOUNDARY_RE.sub("", xml_text)
        if xml_text == previous:
            return xml_text


def is_markup_part(name: str) -> bool:
    """True para el cuerpo principal y las cabeceras/pies (`word/headerN.xml`...)."""

    return bool(_MARKUP_PART_RE.match(name))


def repair_markup_parts(parts: Mapping[str, bytes]) -> dict[str, str]:
    """Normaliza cada parte de marcado por separado.

    Devuelve `{nombre: xml_normalizado}` solo para las partes de marcado; el
    resto de entradas (media, .rels, [Content_Types].xml) no se toca.
    """

    repaired: dict[str, str] = {}
    for name, payload in parts.items():
        if not is_markup_part(name):
            continue
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError:
            LOGGER.warning("Skipping non UTF-8 markup part %s", name)
            continue
        repaired[name] = normalize(text)
    return repaired
