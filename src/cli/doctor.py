"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
import io

import fitz
import typer
from PIL import Image
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from adapters.pdf_stamper import stamp_first_page
from cli.ui_components import build_limits_table
from core.config import AppSettings, get_settings

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(settings: AppSettings, url: str) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


def _check_pdf() -> tuple[bool, str]:
    """Stamp a blank page in memory to detect PyMuPDF/Pillow issues."""

    try:
        with fitz.open() as document:
            document.new_page(width=595, height=842)
            pdf_bytes = document.tobytes()
        buffer = io.BytesIO()
        Image.new("RGB", (40, 20), "red").save(buffer, format="PNG")
        stamp_first_page(pdf_bytes, buffer.getvalue(), content_type="image/png")
        return True, f"PyMuPDF {fitz.VersionBind}"
    except Exception as exc:
        return False, str(exc)


def _check_templates() -> tuple[bool, str]:
    try:
        import docxtpl  # noqa: PLC0415

        return True, f"docxtpl {getattr(docxtpl, '__version__', '?')}"
    except Exception as exc:
        return False, str(exc)


@app.command()
def run(
    check_url: str = typer.Option(
        "",
        "--check-url",
        help="Optional URL used to test outbound HTTP connectivity.",
    ),
) -> None:
    """Run baseline diagnostics and show configured limits."""

    settings = get_settings()
    _console.print(build_limits_table(settings))

    table = Table(title="render-service doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    ok_pdf, detail_pdf = _check_pdf()
    table.add_row("PDF stamping", "OK" if ok_pdf else "FAIL", detail_pdf)

    ok_tpl, detail_tpl = _check_templates()
    table.add_row("DOCX templates", "OK" if ok_tpl else "FAIL", detail_tpl)

    if check_url:
        ok_http, detail_http = asyncio.run(_check_http(settings, check_url))
        table.add_row("HTTP connectivity", "OK" if ok_http else "FAIL", detail_http)
    else:
        table.add_row("HTTP connectivity", "SKIPPED", "Pass --check-url to test outbound access")

    if not settings.image_host_allowlist:
        table.add_row(
            "SSRF guard",
            "WARN",
            "No host allowlist; hostnames are not DNS-resolved before fetching",
        )
    else:
        table.add_row("SSRF guard", "OK", f"{len(settings.image_host_allowlist)} allowed host(s)")

    _console.print(table)

    if not (ok_pdf and ok_tpl):
        raise typer.Exit(code=1)
