import subprocess
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import ClassVar

from assetworker.logging.logger import Log
from assetworker.pdf.base import BasePdfExtractor
from assetworker.pdf.exceptions import PdfExtractionError
from assetworker.producers.base import BaseAssetProducer
from assetworker.producers.exceptions import ProducerError
from assetworker.producers.models import ProducedObject, SourceDocument
from assetworker.producers.support import is_pdf

OCR_TEXT_ASSET_TYPE = "ocr-text"


class OcrTextProducer(BaseAssetProducer):
    """Extracts document text, falling back to ocrmypdf for scanned PDFs.

    The embedded text layer is used when it holds at least min_text_length
    characters; otherwise ocrmypdf writes a sidecar text file.
    """

    asset_type: ClassVar[str] = OCR_TEXT_ASSET_TYPE
    mime_type: ClassVar[str] = "text/plain"

    def __init__(
        self,
        extractor: BasePdfExtractor,
        *,
        ocr_enabled: bool = True,
        ocrmypdf_binary: str = "ocrmypdf",
        min_text_length: int = 50,
        timeout_seconds: int = 600,
    ) -> None:
        self._extractor = extractor
        self._ocr_enabled = ocr_enabled
        self._ocrmypdf_binary = ocrmypdf_binary
        self._min_text_length = min_text_length
        self._timeout_seconds = timeout_seconds

    def supports(self, content_type: str | None, filename: str) -> bool:
        return is_pdf(content_type, filename)

    def produce(self, source: SourceDocument) -> Iterator[ProducedObject]:
        text, pdf_source, page_count = self._extract_text_layer(source.data)
        if len(text) < self._min_text_length and self._ocr_enabled:
            try:
                ocr_text = self._run_ocr(source.data)
            except ProducerError as exc:
                if not text:
                    raise
                Log.warning(f"OCR failed, keeping short text layer: {exc}")
                ocr_text = ""
            if len(ocr_text) >= self._min_text_length or (ocr_text and not text):
                text, pdf_source = ocr_text, "ocr"

        if not text:
            raise ProducerError("No text extracted and OCR produced nothing")

        yield ProducedObject(
            ordinal=1,
            data=text.encode("utf-8"),
            metadata={
                "source": pdf_source,
                "characters": len(text),
                "page_count": page_count,
            },
        )

    def _extract_text_layer(self, data: bytes) -> tuple[str, str, int]:
        try:
            pages = self._extractor.extract_pages(data)
        except PdfExtractionError as exc:
            Log.warning(f"Text layer extraction failed, trying OCR: {exc}")
            return "", "pdf-text", 0
        return "\n".join(pages).strip(), "pdf-text", len(pages)

    def _run_ocr(self, data: bytes) -> str:
        with tempfile.TemporaryDirectory(prefix="assetworker-ocr-") as tmp:
            tmp_dir = Path(tmp)
            input_pdf = tmp_dir / "input.pdf"
            output_pdf = tmp_dir / "output.pdf"
            sidecar = tmp_dir / "sidecar.txt"
            input_pdf.write_bytes(data)
            try:
                result = subprocess.run(
                    [
                        self._ocrmypdf_binary,
                        "--sidecar",
                        str(sidecar),
                        "--skip-text",
                        str(input_pdf),
                        str(output_pdf),
                    ],
                    capture_output=True,
                    timeout=self._timeout_seconds,
                    check=False,
                )
            except FileNotFoundError as exc:
                raise ProducerError(f"{self._ocrmypdf_binary} is not installed") from exc
            except subprocess.TimeoutExpired as exc:
                raise ProducerError(
                    f"{self._ocrmypdf_binary} timed out after {self._timeout_seconds}s"
                ) from exc

            if result.returncode != 0:
                stderr = result.stderr.decode("utf-8", errors="replace").strip()
                raise ProducerError(
                    f"{self._ocrmypdf_binary} failed: exit={result.returncode} stderr={stderr}"
                )
            if not sidecar.exists():
                return ""
            return sidecar.read_text(encoding="utf-8", errors="replace").strip()
