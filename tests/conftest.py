import io

import pymupdf
import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

LONG_LINE = "Quarterly operations report with enough words to count as real text."


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a three-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    for number in ("one", "two", "three"):
        c.drawString(72, 720, f"Page {number} content")
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def text_rich_pdf_bytes() -> bytes:
    """Generate a PDF whose text layer is long enough to skip OCR."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, LONG_LINE)
    c.drawString(72, 700, LONG_LINE)
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_png_bytes() -> bytes:
    """Generate a 400x200 PNG image."""
    doc = pymupdf.open()
    page = doc.new_page(width=400, height=200)
    png = page.get_pixmap().tobytes("png")
    doc.close()
    return png
