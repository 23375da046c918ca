"""HTTP API (FastAPI).

Endpoints:
- GET  /health
- POST /render         (template: .docx, data: JSON string)  -> docx
- POST /replace-image  (docx: .docx, data: {"obraz_url"})    -> docx
- POST /stamp          (pdf: .pdf, data: {"obraz_url"})      -> pdf

Errors are returned as `{"error": ..., "details": ...}` with the status code
of the domain error (see `core.domain.errors`).
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from core.config import AppSettings, get_settings
from core.domain.errors import InputError, RenderServiceError, UploadTooLarge
from core.domain.models import ServiceHealth
from core.interfaces.fetcher import ResourceFetcher
from core.services.document_pipeline import (
    PipelineContext,
    extract_image_url,
    parse_data_json,
    render_template,
    replace_image,
    stamp_pdf,
)

LOGGER = logging.getLogger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PDF_MEDIA_TYPE = "application/pdf"

_READ_CHUNK = 64 * 1024


async def read_upload(upload: UploadFile | None, field: str, limit_bytes: int) -> bytes:
    """Read an uploaded file, rejecting it as soon as it exceeds the limit."""

    if upload is None:
        raise InputError(f"Missing '{field}' file")
    data = bytearray()
    while True:
        chunk = await upload.read(_READ_CHUNK)
        if not chunk:
            break
        data.extend(chunk)
        if len(data) > limit_bytes:
            raise UploadTooLarge(limit_bytes)
    return bytes(data)


def _attachment(data: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def _pipeline(request: Request) -> PipelineContext:
    return request.app.state.pipeline


def create_app(
    settings: AppSettings | None = None,
    *,
    fetcher: ResourceFetcher | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="render-service", docs_url=None, redoc_url=None)
    app.state.settings = settings
    app.state.pipeline = PipelineContext.from_settings(settings, fetcher=fetcher)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(RenderServiceError)
    async def _domain_error(_request: Request, exc: RenderServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            LOGGER.error("%s: %s", type(exc).__name__, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(Exception)
    async def _unexpected_error(_request: Request, exc: Exception) -> JSONResponse:
        LOGGER.exception("Unhandled error")
        return JSONResponse(status_code=500, content={"error": str(exc) or "Server error"})

    @app.get("/health")
    async def health() -> dict:
        payload = ServiceHealth(
            max_upload_mb=settings.max_upload_mb,
            max_remote_mb=settings.max_remote_mb,
            timeout_ms=settings.fetch_timeout_ms,
        )
        return payload.model_dump(by_alias=True)

    @app.post("/render")
    async def render(
        request: Request,
        template: UploadFile | None = File(None),
        data: str | None = Form(None),
    ) -> Response:
        template_bytes = await read_upload(template, "template", settings.max_upload_bytes)
        parsed = parse_data_json(data)
        rendered = await render_template(_pipeline(request), template_bytes=template_bytes, data=parsed)
        return _attachment(rendered, DOCX_MEDIA_TYPE, "rendered.docx")

    @app.post("/replace-image")
    async def replace_image_endpoint(
        request: Request,
        docx: UploadFile | None = File(None),
        data: str | None = Form(None),
    ) -> Response:
        docx_bytes = await read_upload(docx, "docx", settings.max_upload_bytes)
        image_url = extract_image_url(parse_data_json(data))
        result = await replace_image(_pipeline(request), docx_bytes=docx_bytes, image_url=image_url)
        return _attachment(result.data, DOCX_MEDIA_TYPE, "out.docx")

    @app.post("/stamp")
    async def stamp(
        request: Request,
        pdf: UploadFile | None = File(None),
        data: str | None = Form(None),
    ) -> Response:
        pdf_bytes = await read_upload(pdf, "pdf", settings.max_upload_bytes)
        image_url = extract_image_url(parse_data_json(data))
        result = await stamp_pdf(_pipeline(request), pdf_bytes=pdf_bytes, image_url=image_url)
        return _attachment(result.data, PDF_MEDIA_TYPE, "stamped.pdf")

    return app
