"""Command-line interface (typer).

Offline equivalents of the HTTP endpoints plus `serve` and `doctor`. All
commands go through `core.services.document_pipeline`.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console

from cli import doctor
from cli.ui_components import build_replace_panel, print_banner
from core.config import get_settings
from core.domain.errors import RenderServiceError
from core.log_config import configure_logging
from core.services.document_pipeline import (
    PipelineContext,
    render_template,
    replace_image,
    stamp_pdf,
)

app = typer.Typer(
    no_args_is_help=True,
    help="Render DOCX templates, replace placeholder images and stamp PDFs.",
)
app.add_typer(doctor.app, name="doctor")

_console = Console()


def _read_input(path: Path) -> bytes:
    if not path.is_file():
        raise typer.BadParameter(f"File not found: {path}")
    return path.read_bytes()


def _fail(exc: RenderServiceError) -> None:
    _console.print(f"[red]Error:[/red] {exc.message}")
    if exc.details:
        _console.print(f"[dim]{exc.details}[/dim]")
    raise typer.Exit(code=1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)


@app.command()
def serve(
    host: str = typer.Option(None, help="Bind address (defaults to settings)."),
    port: int = typer.Option(None, help="Port (defaults to settings)."),
) -> None:
    """Run the HTTP API with uvicorn."""

    import uvicorn  # noqa: PLC0415

    settings = get_settings()
    print_banner(_console)
    uvicorn.run(
        "api.app:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )


@app.command(name="replace-image")
def replace_image_command(
    docx: Path = typer.Argument(..., help="Input .docx"),
    url: str = typer.Option(..., "--url", help="Image URL (obraz_url)."),
    output: Path = typer.Option(None, "--output", "-o", help="Output path (default: <input>.out.docx)."),
    alt: str = typer.Option(None, "--alt", help="Placeholder alt-text (default from settings)."),
) -> None:
    """Replace the image whose alt-text matches the placeholder marker."""

    context = PipelineContext.from_settings(get_settings())
    output = output or docx.with_suffix(".out.docx")
    try:
        result = asyncio.run(
            replace_image(context, docx_bytes=_read_input(docx), image_url=url, alt_text=alt)
        )
    except RenderServiceError as exc:
        _fail(exc)
        return

    output.write_bytes(result.data)
    if result.placeholder is not None and result.source_url:
        _console.print(build_replace_panel(result.placeholder, result.source_url, output))


@app.command()
def stamp(
    pdf: Path = typer.Argument(..., help="Input .pdf"),
    url: str = typer.Option(..., "--url", help="Image URL (obraz_url)."),
    output: Path = typer.Option(None, "--output", "-o", help="Output path (default: <input>.stamped.pdf)."),
) -> None:
    """Stamp the image on the top-right corner of page 1."""

    context = PipelineContext.from_settings(get_settings())
    output = output or pdf.with_suffix(".stamped.pdf")
    try:
        result = asyncio.run(stamp_pdf(context, pdf_bytes=_read_input(pdf), image_url=url))
    except RenderServiceError as exc:
        _fail(exc)
        return

    output.write_bytes(result.data)
    _console.print(f"[green]Stamped PDF written to:[/green] {output}")


@app.command()
def render(
    template: Path = typer.Argument(..., help="Template .docx with {{field}} placeholders"),
    data: Path = typer.Argument(..., help="JSON file with the template data"),
    output: Path = typer.Option(None, "--output", "-o", help="Output path (default: <template>.rendered.docx)."),
) -> None:
    """Fill a DOCX template with JSON data."""

    context = PipelineContext.from_settings(get_settings())
    output = output or template.with_suffix(".rendered.docx")
    try:
        payload = json.loads(_read_input(data).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise typer.BadParameter(f"Invalid JSON in {data}: {exc}") from exc

    try:
        rendered = asyncio.run(render_template(context, template_bytes=_read_input(template), data=payload))
    except RenderServiceError as exc:
        _fail(exc)
        return

    output.write_bytes(rendered)
    _console.print(f"[green]Rendered document written to:[/green] {output}")


def run() -> None:
    app()
