"""Estampado de una imagen en la página 1 de un PDF (PyMuPDF + Pillow).

`StampPlacer` calcula la caja en espacio PDF (origen abajo-izquierda);
PyMuPDF trabaja con origen arriba-izquierda, así que aquí se convierte.
"""

from __future__ import annotations

import io
import logging

import fitz
from PIL import Image, UnidentifiedImageError

from core.domain.errors import InputError, RenderServiceError
from core.domain.models import StampPlacement
from core.services.stamp_placer import StampPlacer

LOGGER = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG"


def detect_image_format(content_type: str, data: bytes) -> str:
    """`png` o `jpeg`.

    Primero el content-type; si no lo deja claro, la firma PNG de los primeros
    bytes. Todo lo demás se trata como JPEG.
    """

    if "png" in (content_type or "").lower():
        return "png"
    if len(data) >= 8 and data.startswith(PNG_SIGNATURE):
        return "png"
    return "jpeg"


def read_image_size(data: bytes, image_format: str) -> tuple[int, int]:
    """Tamaño en píxeles decodificando solo con el formato elegido."""

    try:
        with Image.open(io.BytesIO(data), formats=[image_format.upper()]) as image:
            return image.size
    except (UnidentifiedImageError, OSError) as exc:
        raise RenderServiceError(f"Could not decode image as {image_format.upper()}") from exc


def to_fitz_rect(placement: StampPlacement, page_height: float) -> fitz.Rect:
    top = page_height - placement.y - placement.draw_height
    return fitz.Rect(
        placement.x,
        top,
        placement.x + placement.draw_width,
        top + placement.draw_height,
    )


def stamp_first_page(
    pdf_bytes: bytes,
    image_bytes: bytes,
    *,
    content_type: str = "",
    placer: StampPlacer | None = None,
) -> bytes:
    """Dibuja la imagen en la esquina superior derecha de la página 1."""

    placer = placer or StampPlacer()
    try:
        document = fitz.open(stream=pdf_bytes, filetype="pdf")
    except (fitz.FileDataError, RuntimeError, ValueError) as exc:
        raise InputError("Invalid PDF", details=str(exc)) from exc

    with document:
        if document.page_count == 0:
            raise InputError("Invalid PDF", details="Document has no pages")
        page = document[0]
        page_width, page_height = page.rect.width, page.rect.height

        image_format = detect_image_format(content_type, image_bytes)
        image_width, image_height = read_image_size(image_bytes, image_format)
        placement = placer.place(page_width, page_height, image_width, image_height)

        page.insert_image(
            to_fitz_rect(placement, page_height),
            stream=image_bytes,
            keep_proportion=False,
            overlay=True,
        )
        LOGGER.info(
            "Stamped %s %dx%d at (%.1f, %.1f) scale %.3f",
            image_format,
            image_width,
            image_height,
            placement.x,
            placement.y,
            placement.scale,
        )
        return document.tobytes(deflate=True)
