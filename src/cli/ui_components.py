"""Componentes de UI para la CLI (Rich).

Tablas y paneles reutilizados por los comandos; la lógica vive en
`core.services.document_pipeline`.
"""

from __future__ import annotations

from pathlib import Path

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import AppSettings
from core.domain.models import ImagePlaceholder


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida (solo en modo interactivo)."""

    title = Text("render-service", style="bold cyan")
    subtitle = Text("DOCX render • Image replace • PDF stamp", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_limits_table(settings: AppSettings) -> Table:
    """Tabla con los límites y la política configurados."""

    table = Table(title="Configured limits")
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_row("Max upload", f"{settings.max_upload_mb} MB")
    table.add_row("Max remote image", f"{settings.max_remote_mb} MB")
    table.add_row("Fetch timeout", f"{settings.fetch_timeout_ms} ms")
    table.add_row("Image host allowlist", ", ".join(settings.image_host_allowlist) or "(none)")
    table.add_row("CORS origins", ", ".join(settings.cors_origin_list))
    table.add_row("Placeholder alt-text", settings.placeholder_alt)
    table.add_row(
        "Stamp box",
        f"{settings.stamp_max_width:g}x{settings.stamp_max_height:g} pt, margin {settings.stamp_margin:g} pt",
    )
    return table


def build_replace_panel(placeholder: ImagePlaceholder, source_url: str, output_path: Path) -> Panel:
    """Panel con el resultado de un reemplazo de imagen."""

    body = Text()
    body.append("Part: ", style="bold")
    body.append(f"{placeholder.containing_part}\n")
    body.append("Media: ", style="bold")
    body.append(f"{placeholder.resolved_media_path} ({placeholder.relationship_id})\n")
    body.append("Source: ", style="bold")
    body.append(f"{source_url}\n")
    body.append("Output: ", style="bold")
    body.append(str(output_path), style="green")
    return Panel(body, title=Text("Image replaced", style="bold green"), border_style="green")
