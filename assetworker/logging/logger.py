import logging
import sys
from typing import Any

_FIELDS = "fields"


class KeyValueFormatter(logging.Formatter):
    """Renders the fields passed to Log.* as sorted key=value pairs after the message."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        fields: dict[str, Any] = getattr(record, _FIELDS, None) or {}
        if not fields:
            return line
        pairs = " ".join(f"{key}={fields[key]}" for key in sorted(fields))
        return f"{line} | {pairs}"


class Log:
    """Process-wide logger for the worker.

    Keyword arguments become structured fields, e.g.
    Log.info("Job claimed", job_id=job.id, job_type=job.job_type).
    """

    _logger: logging.Logger = logging.getLogger("assetworker")

    @classmethod
    def configure(cls, log_level: str, stream: Any = None) -> None:
        """Set the level and attach a single key=value handler (stdout by default)."""
        cls._logger.setLevel(log_level.upper())
        cls._logger.propagate = False
        for handler in list(cls._logger.handlers):
            cls._logger.removeHandler(handler)
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(
            KeyValueFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str, **fields: object) -> None:
        cls._logger.info(message, extra={_FIELDS: fields})

    @classmethod
    def error(cls, message: str, **fields: object) -> None:
        cls._logger.error(message, extra={_FIELDS: fields})

    @classmethod
    def warning(cls, message: str, **fields: object) -> None:
        cls._logger.warning(message, extra={_FIELDS: fields})

    @classmethod
    def debug(cls, message: str, **fields: object) -> None:
        cls._logger.debug(message, extra={_FIELDS: fields})
