from abc import ABC, abstractmethod


class BasePdfExtractor(ABC):
    """Contract for PDF text-layer extraction adapters."""

    @abstractmethod
    def extract_pages(self, pdf_bytes: bytes) -> list[str]:
        """Extract the embedded text layer of each page.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            One stripped string per page, in page order. Pages without a text
            layer (scans) yield empty strings.

        Raises:
            PdfExtractionError: if the document cannot be opened or read.
        """
