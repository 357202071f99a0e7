from assetworker.config.settings import Settings
from assetworker.pdf.factory import PdfExtractorFactory
from assetworker.producers.base import BaseAssetProducer
from assetworker.producers.ocr_text import OcrTextProducer
from assetworker.producers.preview import PreviewProducer
from assetworker.producers.thumbnail import ThumbnailProducer


class ProducerFactory:
    """Builds the registry of artifact producers keyed by asset type."""

    @classmethod
    def create_all(cls, settings: Settings) -> dict[str, BaseAssetProducer]:
        producers: list[BaseAssetProducer] = [
            ThumbnailProducer(max_size=settings.thumbnail_max_size),
            PreviewProducer(max_size=settings.preview_max_size),
            OcrTextProducer(
                PdfExtractorFactory.create(settings),
                ocr_enabled=settings.ocr_enabled,
                ocrmypdf_binary=settings.ocrmypdf_binary,
                min_text_length=settings.ocr_min_text_length,
            ),
        ]
        return {producer.asset_type: producer for producer in producers}
