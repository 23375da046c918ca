"""Relleno de plantillas DOCX `{{campo}}` con docxtpl (Jinja2).

La plantilla pasa antes por la reparación de marcadores fragmentados. Los
valores `data:image/...;base64,` del JSON se convierten en imágenes en línea
con un ancho máximo configurable y los saltos de línea en `<w:br/>`.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
from typing import Any

from docx.shared import Emu
from docxtpl import DocxTemplate, InlineImage, Listing
from jinja2 import Environment, TemplateError, TemplateSyntaxError
from PIL import Image, UnidentifiedImageError

from core.domain.errors import TemplateRenderError
from core.services.container import ContainerPatcher

LOGGER = logging.getLogger(__name__)

EMU_PER_PIXEL = 9525
_DATA_IMAGE_PREFIX = "data:image/"


def _decode_data_uri(value: str) -> bytes | None:
    header, _, payload = value.partition(",")
    if not payload or ";base64" not in header:
        return None
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError):
        return None


def _inline_image(template: DocxTemplate, blob: bytes, max_width_px: int) -> InlineImage | None:
    try:
        with Image.open(io.BytesIO(blob)) as image:
            width, height = image.size
    except (UnidentifiedImageError, OSError):
        return None
    scale = max_width_px / width if width > max_width_px else 1.0
    return InlineImage(
        template,
        io.BytesIO(blob),
        width=Emu(round(width * scale) * EMU_PER_PIXEL),
        height=Emu(round(height * scale) * EMU_PER_PIXEL),
    )


def build_context(template: DocxTemplate, data: Any, *, max_image_width_px: int = 500) -> Any:
    """Copia `data` sustituyendo los data-URI de imagen por `InlineImage`.

    Los textos con saltos de línea se envuelven en `Listing` (`<w:br/>`).
    """

    if isinstance(data, dict):
        return {key: build_context(template, value, max_image_width_px=max_image_width_px) for key, value in data.items()}
    if isinstance(data, list):
        return [build_context(template, item, max_image_width_px=max_image_width_px) for item in data]
    if isinstance(data, str) and data.startswith(_DATA_IMAGE_PREFIX):
        blob = _decode_data_uri(data)
        if blob:
            image = _inline_image(template, blob, max_image_width_px)
            if image is not None:
                return image
        LOGGER.warning("Ignoring undecodable data URI image")
    if isinstance(data, str) and "\n" in data:
        return Listing(data)
    return data


def _error_details(exc: TemplateError) -> dict[str, Any]:
    details: dict[str, Any] = {"type": type(exc).__name__, "message": exc.message or str(exc)}
    if isinstance(exc, TemplateSyntaxError):
        details["lineno"] = exc.lineno
        if exc.name:
            details["name"] = exc.name
    return details


def render_docx_template(
    template_bytes: bytes,
    data: Any,
    *,
    max_image_width_px: int = 500,
    patcher: ContainerPatcher | None = None,
) -> bytes:
    """Rellena la plantilla con `data` y devuelve el DOCX resultante."""

    patcher = patcher or ContainerPatcher()
    repaired = patcher.repair_template(template_bytes)

    template = DocxTemplate(io.BytesIO(repaired))
    context = build_context(template, data if isinstance(data, dict) else {}, max_image_width_px=max_image_width_px)
    try:
        template.render(context, jinja_env=Environment(), autoescape=True)
    except TemplateError as exc:
        LOGGER.warning("Template render failed: %s", exc)
        raise TemplateRenderError(str(exc) or "Template render failed", details=_error_details(exc)) from exc

    output = io.BytesIO()
    template.save(output)
    return output.getvalue()
