from collections.abc import Iterator
from typing import ClassVar

from assetworker.logging.logger import Log
from assetworker.producers.base import BaseAssetProducer
from assetworker.producers.models import ProducedObject, SourceDocument
from assetworker.producers.rendering import allows_upscale, open_document, render_page
from assetworker.producers.support import is_image, is_pdf

PREVIEW_ASSET_TYPE = "preview"


class PreviewProducer(BaseAssetProducer):
    """Renders every page as a large PNG, one object per page."""

    asset_type: ClassVar[str] = PREVIEW_ASSET_TYPE
    mime_type: ClassVar[str] = "image/png"

    def __init__(self, max_size: int = 2048) -> None:
        self._max_size = max_size

    def supports(self, content_type: str | None, filename: str) -> bool:
        return is_pdf(content_type, filename) or is_image(content_type, filename)

    def estimate_cardinality(self, source: SourceDocument) -> int | None:
        with open_document(source) as doc:
            return doc.page_count or None

    def produce(self, source: SourceDocument) -> Iterator[ProducedObject]:
        upscale = allows_upscale(source)
        with open_document(source) as doc:
            for index, page in enumerate(doc):
                rendered = render_page(page, self._max_size, upscale)
                Log.debug(
                    f"Rendered preview page {index + 1}/{doc.page_count} "
                    f"of version {source.version_id}"
                )
                yield ProducedObject(
                    ordinal=index + 1,
                    data=rendered.png,
                    metadata={"width": rendered.width, "height": rendered.height},
                )
