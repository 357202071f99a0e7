from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import ClassVar

from assetworker.producers.models import ProducedObject, SourceDocument


class BaseAssetProducer(ABC):
    """Contract for artifact producers invoked by the asset pipeline."""

    asset_type: ClassVar[str]
    mime_type: ClassVar[str]

    @abstractmethod
    def supports(self, content_type: str | None, filename: str) -> bool:
        """Whether this producer can derive its asset from such a document."""

    def estimate_cardinality(self, source: SourceDocument) -> int | None:
        """Object count declared before production starts, if known."""
        return 1

    @abstractmethod
    def produce(self, source: SourceDocument) -> Iterator[ProducedObject]:
        """Yield objects in ordinal order starting at 1.

        Objects are persisted as they are yielded, so a failure part way
        through keeps the earlier ones.

        Raises:
            ProducerError: on any failure.
        """
