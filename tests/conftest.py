from __future__ import annotations

import io
import zipfile

import fitz
import pytest
from PIL import Image

from core.config import AppSettings
from core.domain.models import FetchedResource

NAMESPACES = (
    'xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main" '
    'xmlns:wp="http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing" '
    'xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main" '
    'xmlns:pic="http://schemas.openxmlformats.org/drawingml/2006/picture" '
    'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships"'
)

IMAGE_REL_TYPE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/image"

CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="png" ContentType="image/png"/>'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    "</Types>"
)


def drawing_xml(alt_text: str, r_id: str, *, attr: str = "descr", doc_pr_id: int = 1) -> str:
    """A paragraph holding one inline picture whose docPr carries `alt_text`."""

    return (
        "<w:p><w:r><w:drawing><wp:inline>"
        '<wp:extent cx="952500" cy="952500"/>'
        f'<wp:docPr id="{doc_pr_id}" name="Picture {doc_pr_id}" {attr}="{alt_text}"/>'
        '<a:graphic><a:graphicData uri="http://schemas.openxmlformats.org/drawingml/2006/picture">'
        f'<pic:pic><pic:blipFill><a:blip r:embed="{r_id}"/></pic:blipFill></pic:pic>'
        "</a:graphicData></a:graphic>"
        "</wp:inline></w:drawing></w:r></w:p>"
    )


def paragraph_xml(text: str) -> str:
    return f"<w:p><w:r><w:t>{text}</w:t></w:r></w:p>"


def document_xml(inner: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f"<w:document {NAMESPACES}><w:body>{inner}</w:body></w:document>"
    )


def header_xml(inner: str, *, root: str = "w:hdr") -> str:
    return f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?><{root} {NAMESPACES}>{inner}</{root}>'


def rels_xml(targets: dict[str, str]) -> str:
    rows = "".join(
        f'<Relationship Id="{r_id}" Type="{IMAGE_REL_TYPE}" Target="{target}"/>'
        for r_id, target in targets.items()
    )
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">{rows}</Relationships>'
    )


def build_zip(parts: dict[str, str | bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, payload in parts.items():
            archive.writestr(name, payload.encode("utf-8") if isinstance(payload, str) else payload)
    return buffer.getvalue()


def read_zip(data: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return {name: archive.read(name) for name in archive.namelist()}


def png_bytes(width: int = 4, height: int = 2, color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def jpeg_bytes(width: int = 4, height: int = 2, color: str = "blue") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="JPEG")
    return buffer.getvalue()


def pdf_bytes(width: float = 600, height: float = 800, pages: int = 1) -> bytes:
    with fitz.open() as document:
        for _ in range(pages):
            document.new_page(width=width, height=height)
        return document.tobytes()


OLD_IMAGE = b"\x89PNG\r\n\x1a\nOLD-IMAGE-BYTES"


def placeholder_docx(alt_text: str = "REPLACE_ME", *, header_alt: str | None = None) -> bytes:
    """Body with a marked picture (rId5 -> media/image1.png), optional header picture."""

    parts: dict[str, str | bytes] = {
        "[Content_Types].xml": CONTENT_TYPES,
        "word/document.xml": document_xml(paragraph_xml("Intro") + drawing_xml(alt_text, "rId5")),
        "word/_rels/document.xml.rels": rels_xml({"rId5": "media/image1.png"}),
        "word/media/image1.png": OLD_IMAGE,
        "word/styles.xml": "<w:styles/>",
    }
    if header_alt is not None:
        parts["word/header1.xml"] = header_xml(drawing_xml(header_alt, "rId1", doc_pr_id=2))
        parts["word/_rels/header1.xml.rels"] = rels_xml({"rId1": "media/image2.png"})
        parts["word/media/image2.png"] = b"\x89PNG\r\n\x1a\nHEADER-IMAGE"
    return build_zip(parts)


class StubFetcher:
    """In-memory `ResourceFetcher` recording the URLs it was asked for."""

    def __init__(self, data: bytes | None = None, content_type: str = "image/png", error: Exception | None = None):
        self.data = data if data is not None else png_bytes()
        self.content_type = content_type
        self.error = error
        self.calls: list[str] = []

    async def fetch(self, safe_url: str) -> FetchedResource:
        self.calls.append(safe_url)
        if self.error is not None:
            raise self.error
        return FetchedResource(data=self.data, content_type=self.content_type, source_url=safe_url)


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(_env_file=None)


@pytest.fixture
def stub_fetcher() -> StubFetcher:
    return StubFetcher()
