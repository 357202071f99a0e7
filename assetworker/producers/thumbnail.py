from collections.abc import Iterator
from typing import ClassVar

from assetworker.producers.base import BaseAssetProducer
from assetworker.producers.exceptions import ProducerError
from assetworker.producers.models import ProducedObject, SourceDocument
from assetworker.producers.rendering import allows_upscale, open_document, render_page
from assetworker.producers.support import is_image, is_pdf

THUMBNAIL_ASSET_TYPE = "thumbnail"


class ThumbnailProducer(BaseAssetProducer):
    """Renders the first page of a PDF or image as a single small PNG."""

    asset_type: ClassVar[str] = THUMBNAIL_ASSET_TYPE
    mime_type: ClassVar[str] = "image/png"

    def __init__(self, max_size: int = 512) -> None:
        self._max_size = max_size

    def supports(self, content_type: str | None, filename: str) -> bool:
        return is_pdf(content_type, filename) or is_image(content_type, filename)

    def produce(self, source: SourceDocument) -> Iterator[ProducedObject]:
        with open_document(source) as doc:
            if doc.page_count == 0:
                raise ProducerError("Document has no pages to render")
            rendered = render_page(doc[0], self._max_size, allows_upscale(source))
            page_count = doc.page_count
        yield ProducedObject(
            ordinal=1,
            data=rendered.png,
            metadata={
                "width": rendered.width,
                "height": rendered.height,
                "page_count": page_count,
            },
        )
