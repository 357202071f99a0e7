from abc import ABC, abstractmethod
from typing import ClassVar

from assetworker.database.models import JobRecord
from assetworker.queue.payloads import JobPayload


class JobHandler(ABC):
    """Executes one claimed job of a single job type."""

    job_type: ClassVar[str]

    @abstractmethod
    def handle(self, job: JobRecord, payload: JobPayload) -> None:
        """Run the job. Any exception marks the attempt as failed."""
        raise NotImplementedError


def build_registry(handlers: list[JobHandler]) -> dict[str, JobHandler]:
    registry: dict[str, JobHandler] = {}
    for handler in handlers:
        if handler.job_type in registry:
            raise ValueError(f"Duplicate handler for job type {handler.job_type}")
        registry[handler.job_type] = handler
    return registry
