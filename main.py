"""Arranque local sin instalar el paquete.

`python main.py serve` o `python -m main render plantilla.docx datos.json`
desde la raíz del repo. Añade `src/` al path y delega en `cli.main.run`.
"""

from __future__ import annotations

import sys
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parent / "src"


def main() -> None:
    if str(SRC_DIR) not in sys.path:
        sys.path.insert(0, str(SRC_DIR))
    if sys.platform == "win32":
        # Rich imprime UTF-8; la consola de Windows usa cp1252 por defecto.
        sys.stdout.reconfigure(encoding="utf-8")
        sys.stderr.reconfigure(encoding="utf-8")

    from cli.main import run  # noqa: PLC0415

    run()


if __name__ == "__main__":
    main()
