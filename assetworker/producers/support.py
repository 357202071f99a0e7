"""Decide which asset types a document can produce from its type and name."""

IMAGE_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/tiff",
        "image/bmp",
        "image/webp",
    }
)
IMAGE_EXTENSIONS = {
    "jpg": "jpeg",
    "jpeg": "jpeg",
    "png": "png",
    "gif": "gif",
    "tif": "tiff",
    "tiff": "tiff",
    "bmp": "bmp",
    "webp": "webp",
}
PDF_MIME_TYPE = "application/pdf"


def _extension(filename: str) -> str:
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def is_pdf(content_type: str | None, filename: str) -> bool:
    if content_type and content_type.lower() == PDF_MIME_TYPE:
        return True
    return _extension(filename) == "pdf"


def is_image(content_type: str | None, filename: str) -> bool:
    if content_type and content_type.lower() in IMAGE_MIME_TYPES:
        return True
    return _extension(filename) in IMAGE_EXTENSIONS


def render_filetype(content_type: str | None, filename: str) -> str:
    """File type hint for opening the document with PyMuPDF."""
    if is_pdf(content_type, filename):
        return "pdf"
    if content_type and content_type.lower() in IMAGE_MIME_TYPES:
        return content_type.lower().split("/", 1)[1]
    return IMAGE_EXTENSIONS.get(_extension(filename), "pdf")
