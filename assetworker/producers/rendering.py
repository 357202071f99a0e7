from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import pymupdf

from assetworker.producers.exceptions import ProducerError
from assetworker.producers.models import SourceDocument
from assetworker.producers.support import is_pdf, render_filetype


@dataclass(frozen=True)
class RenderedPage:
    png: bytes
    width: int
    height: int


@contextmanager
def open_document(source: SourceDocument) -> Iterator[pymupdf.Document]:
    filetype = render_filetype(source.content_type, source.original_name)
    try:
        doc = pymupdf.open(stream=source.data, filetype=filetype)  # type: ignore[no-untyped-call]
    except Exception as exc:
        raise ProducerError(f"Cannot open {filetype} document: {exc}") from exc
    try:
        yield doc
    finally:
        doc.close()


def render_page(page: pymupdf.Page, max_size: int, allow_upscale: bool) -> RenderedPage:
    """Render a page to PNG so that neither side exceeds max_size pixels."""
    rect = page.rect
    if rect.width <= 0 or rect.height <= 0:
        raise ProducerError("Page has no drawable area")
    scale = min(max_size / rect.width, max_size / rect.height)
    if not allow_upscale:
        scale = min(scale, 1.0)
    try:
        pix = page.get_pixmap(matrix=pymupdf.Matrix(scale, scale), alpha=False)
        png = pix.tobytes("png")
    except Exception as exc:
        raise ProducerError(f"Page render failed: {exc}") from exc
    return RenderedPage(png=png, width=pix.width, height=pix.height)


def allows_upscale(source: SourceDocument) -> bool:
    """PDF pages are vector and render at target size; images only shrink."""
    return is_pdf(source.content_type, source.original_name)
