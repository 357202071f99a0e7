from assetworker.config.settings import Settings
from assetworker.pdf.base import BasePdfExtractor
from assetworker.pdf.pdfplumber_adapter import PdfPlumberAdapter
from assetworker.pdf.pymupdf_adapter import PyMuPdfAdapter

_ENGINES: dict[str, type[BasePdfExtractor]] = {
    "pdfplumber": PdfPlumberAdapter,
    "pymupdf": PyMuPdfAdapter,
}


class PdfExtractorFactory:
    """Text-layer extractor used by the ocr-text producer, selected by pdf_engine."""

    @staticmethod
    def engines() -> list[str]:
        return sorted(_ENGINES)

    @classmethod
    def for_engine(cls, engine: str) -> BasePdfExtractor:
        extractor_cls = _ENGINES.get(engine.strip().lower())
        if extractor_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {', '.join(cls.engines())}"
            )
        return extractor_cls()

    @classmethod
    def create(cls, settings: Settings) -> BasePdfExtractor:
        return cls.for_engine(settings.pdf_engine)
