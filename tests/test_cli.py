from __future__ import annotations

import json

import fitz
import pytest
from conftest import StubFetcher, pdf_bytes, placeholder_docx, read_zip
from docx import Document
from typer.testing import CliRunner

from cli import main as cli_main
from core.services.document_pipeline import PipelineContext

IMAGE_URL = "https://example.com/img.png"

runner = CliRunner()


@pytest.fixture
def stub_context(monkeypatch):
    fetcher = StubFetcher()
    build = PipelineContext.from_settings
    monkeypatch.setattr(
        cli_main.PipelineContext,
        "from_settings",
        lambda settings, **_: build(settings, fetcher=fetcher),
    )
    return fetcher


def test_replace_image_command_writes_output(tmp_path, stub_context):
    source = tmp_path / "contract.docx"
    source.write_bytes(placeholder_docx())
    target = tmp_path / "signed.docx"

    result = runner.invoke(cli_main.app, ["replace-image", str(source), "--url", IMAGE_URL, "--output", str(target)])

    assert result.exit_code == 0, result.output
    assert "Image replaced" in result.output
    assert read_zip(target.read_bytes())["word/media/image1.png"] == stub_context.data
    assert stub_context.calls == [IMAGE_URL]


def test_replace_image_command_reports_missing_placeholder(tmp_path, stub_context):
    source = tmp_path / "contract.docx"
    source.write_bytes(placeholder_docx(alt_text="logo"))

    result = runner.invoke(cli_main.app, ["replace-image", str(source), "--url", IMAGE_URL])

    assert result.exit_code == 1
    assert "Placeholder image not found" in result.output
    assert not (tmp_path / "contract.out.docx").exists()


def test_replace_image_command_rejects_private_url(tmp_path, stub_context):
    source = tmp_path / "contract.docx"
    source.write_bytes(placeholder_docx())

    result = runner.invoke(cli_main.app, ["replace-image", str(source), "--url", "http://localhost/x.png"])

    assert result.exit_code == 1
    assert "Localhost is not allowed" in result.output
    assert stub_context.calls == []


def test_stamp_command_uses_default_output(tmp_path, stub_context):
    source = tmp_path / "invoice.pdf"
    source.write_bytes(pdf_bytes())

    result = runner.invoke(cli_main.app, ["stamp", str(source), "--url", IMAGE_URL])

    assert result.exit_code == 0, result.output
    with fitz.open(tmp_path / "invoice.stamped.pdf") as document:
        assert len(document[0].get_images()) == 1


def test_render_command_rejects_bad_json(tmp_path):
    template = tmp_path / "template.docx"
    template.write_bytes(placeholder_docx())
    data = tmp_path / "data.json"
    data.write_text("{not json", encoding="utf-8")

    result = runner.invoke(cli_main.app, ["render", str(template), str(data)])

    assert result.exit_code != 0


def test_render_command_writes_document(tmp_path):
    document = Document()
    document.add_paragraph("Dear {{ name }}")
    template = tmp_path / "letter.docx"
    document.save(template)
    data = tmp_path / "data.json"
    data.write_text(json.dumps({"name": "Ana"}), encoding="utf-8")

    result = runner.invoke(cli_main.app, ["render", str(template), str(data)])

    assert result.exit_code == 0, result.output
    rendered = Document(tmp_path / "letter.rendered.docx")
    assert rendered.paragraphs[0].text == "Dear Ana"


def test_doctor_runs_local_checks():
    result = runner.invoke(cli_main.app, ["doctor", "run"])

    assert result.exit_code == 0, result.output
    assert "PDF stamping" in result.output
    assert "SSRF guard" in result.output
