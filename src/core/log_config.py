"""Configuración de logging (stdlib `logging` + `rich`).

Se llama una vez desde los entry-points (CLI, servidor). Los módulos usan
`logging.getLogger(__name__)` y no configuran handlers por su cuenta.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_CONFIGURED = False


def configure_logging(level: str | int = "INFO", *, console: Console | None = None) -> None:
    global _CONFIGURED

    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)
    if _CONFIGURED:
        return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))
    root.addHandler(handler)
    # httpx registra cada petición en INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _CONFIGURED = True
