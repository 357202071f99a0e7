class ProducerError(Exception):
    """Raised when an artifact producer fails; the job is retried with backoff."""


class UnsupportedDocumentError(ProducerError):
    """Raised when a producer is asked to handle a document type it cannot read."""
