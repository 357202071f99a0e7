class QueueError(Exception):
    """Base exception for all job queue errors."""


class StoreUnavailableError(QueueError):
    """Raised when the backing store cannot be reached for enqueue or claim."""


class PayloadError(QueueError):
    """Raised when a job payload cannot be decoded for its job type."""


class UnknownJobTypeError(PayloadError):
    """Raised when a job carries a type tag with no registered payload model."""
