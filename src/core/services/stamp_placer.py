"""Cálculo de la caja del sello sobre la primera página de un PDF.

La escala conserva la proporción y nunca amplía la imagen. La caja se ancla
a la esquina superior derecha, en espacio de usuario PDF (origen abajo-izquierda).
"""

from __future__ import annotations

from dataclasses import dataclass

from core.domain.models import StampPlacement

DEFAULT_MAX_WIDTH = 260.0
DEFAULT_MAX_HEIGHT = 160.0
DEFAULT_MARGIN = 36.0


@dataclass(frozen=True)
class StampPlacer:
    max_width: float = DEFAULT_MAX_WIDTH
    max_height: float = DEFAULT_MAX_HEIGHT
    margin: float = DEFAULT_MARGIN

    def place(self, page_width: float, page_height: float, image_width: float, image_height: float) -> StampPlacement:
        if image_width <= 0 or image_height <= 0:
            raise ValueError(f"Invalid image size {image_width}x{image_height}")

        scale = min(1.0, self.max_width / image_width, self.max_height / image_height)
        draw_width = image_width * scale
        draw_height = image_height * scale
        return StampPlacement(
            x=page_width - draw_width - self.margin,
            y=page_height - draw_height - self.margin,
            draw_width=draw_width,
            draw_height=draw_height,
            scale=scale,
        )
