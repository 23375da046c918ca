"""Document patching orchestration.

This module holds the three request flows (render, replace-image, stamp) so
that the HTTP API and the CLI share one implementation. Entry points only
parse input and format output; everything else happens here.

Every component is built once from the immutable settings
(`PipelineContext.from_settings`) and reused across requests. CPU-bound work
(zip patching, PDF stamping, template rendering) runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

from adapters.http_client import HttpResourceFetcher
from adapters.pdf_stamper import stamp_first_page
from adapters.template_renderer import render_docx_template
from core.config import AppSettings
from core.domain.errors import InputError, PlaceholderNotFound
from core.domain.models import FetchedResource, ImagePlaceholder
from core.interfaces.fetcher import ResourceFetcher
from core.services.container import ContainerPatcher
from core.services.ssrf_guard import SsrfGuard
from core.services.stamp_placer import StampPlacer

LOGGER = logging.getLogger(__name__)

IMAGE_URL_FIELD = "obraz_url"


@dataclass
class PipelineContext:
    """Components shared (read-only) by every request."""

    settings: AppSettings
    guard: SsrfGuard
    fetcher: ResourceFetcher
    patcher: ContainerPatcher
    placer: StampPlacer

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        *,
        fetcher: ResourceFetcher | None = None,
    ) -> "PipelineContext":
        return cls(
            settings=settings,
            guard=SsrfGuard(settings.build_ssrf_policy()),
            fetcher=fetcher or HttpResourceFetcher(settings),
            patcher=ContainerPatcher(),
            placer=StampPlacer(
                max_width=settings.stamp_max_width,
                max_height=settings.stamp_max_height,
                margin=settings.stamp_margin,
            ),
        )


@dataclass
class ReplaceImageResult:
    """Output of `replace_image`. `placeholder` is None when no URL was given."""

    data: bytes
    placeholder: ImagePlaceholder | None = None
    source_url: str | None = None


@dataclass
class StampResult:
    data: bytes
    source_url: str | None = None


def parse_data_json(raw: str | None) -> Any:
    """Parse the multipart `data` field (missing or malformed -> `InputError`)."""

    if not raw:
        raise InputError("Missing 'data' field")
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        raise InputError("Invalid JSON in 'data' field") from None


def extract_image_url(data: Any) -> str | None:
    """Return `obraz_url` when present and non-empty."""

    if not isinstance(data, dict):
        return None
    value = data.get(IMAGE_URL_FIELD)
    if not value:
        return None
    return str(value)


async def download_image(context: PipelineContext, url: str) -> FetchedResource:
    """Validate `url` against the SSRF policy, then fetch it."""

    safe_url = context.guard.validate(url)
    return await context.fetcher.fetch(safe_url)


async def replace_image(
    context: PipelineContext,
    *,
    docx_bytes: bytes,
    image_url: str | None,
    alt_text: str | None = None,
) -> ReplaceImageResult:
    """Swap the bytes of the image marked with `alt_text` for the remote image.

    The download happens before the container is opened; any failure leaves
    the document untouched. Without a URL the input is returned unmodified.
    """

    if not image_url:
        return ReplaceImageResult(data=docx_bytes)

    alt_text = alt_text or context.settings.placeholder_alt
    resource = await download_image(context, image_url)
    result = await asyncio.to_thread(
        context.patcher.patch_image,
        docx_bytes,
        alt_text,
        resource.data,
    )
    if result.placeholder is None:
        raise PlaceholderNotFound(alt_text)

    LOGGER.info("Replaced image: %s from %s", result.placeholder.describe(), resource.source_url)
    return ReplaceImageResult(
        data=result.data,
        placeholder=result.placeholder,
        source_url=resource.source_url,
    )


async def stamp_pdf(
    context: PipelineContext,
    *,
    pdf_bytes: bytes,
    image_url: str | None,
) -> StampResult:
    """Draw the remote image on the top-right corner of page 1."""

    if not image_url:
        return StampResult(data=pdf_bytes)

    resource = await download_image(context, image_url)
    stamped = await asyncio.to_thread(
        stamp_first_page,
        pdf_bytes,
        resource.data,
        content_type=resource.content_type,
        placer=context.placer,
    )
    return StampResult(data=stamped, source_url=resource.source_url)


async def render_template(
    context: PipelineContext,
    *,
    template_bytes: bytes,
    data: Any,
) -> bytes:
    """Fill `{{field}}` placeholders after repairing fragmented markers."""

    return await asyncio.to_thread(
        render_docx_template,
        template_bytes,
        data,
        max_image_width_px=context.settings.render_image_max_width_px,
        patcher=context.patcher,
    )
