class LedgerError(Exception):
    """Base exception for version ledger errors."""


class DocumentNotFoundError(LedgerError):
    """Raised when a document does not exist or has been deleted."""


class VersionNotFoundError(LedgerError):
    """Raised when a document version does not exist."""
