"""Typed job payloads, keyed by job type and decoded at claim time."""

from typing import Any, ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from assetworker.queue.exceptions import PayloadError, UnknownJobTypeError

JOB_ANALYZE_DOCUMENT = "analyze-document"
JOB_GENERATE_ASSETS = "generate-assets"


class JobPayload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    job_type: ClassVar[str]


class AnalyzeDocumentPayload(JobPayload):
    job_type: ClassVar[str] = JOB_ANALYZE_DOCUMENT

    document_id: UUID
    version_id: UUID
    force: bool = False


class GenerateAssetsPayload(JobPayload):
    job_type: ClassVar[str] = JOB_GENERATE_ASSETS

    version_id: UUID
    asset_types: list[str] = Field(min_length=1)
    force: bool = False

    @field_validator("asset_types")
    @classmethod
    def _dedupe_types(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for asset_type in value:
            cleaned = asset_type.strip()
            if not cleaned:
                raise ValueError("asset type must not be blank")
            if cleaned not in seen:
                seen.append(cleaned)
        return seen


PAYLOAD_TYPES: dict[str, type[JobPayload]] = {
    JOB_ANALYZE_DOCUMENT: AnalyzeDocumentPayload,
    JOB_GENERATE_ASSETS: GenerateAssetsPayload,
}


def decode_payload(job_type: str, raw: Any) -> JobPayload:
    """Decode a raw JSON payload into the model registered for job_type.

    Raises:
        UnknownJobTypeError: if no payload model is registered for job_type.
        PayloadError: if the payload does not match the model.
    """
    model = PAYLOAD_TYPES.get(job_type)
    if model is None:
        raise UnknownJobTypeError(f"Unknown job type '{job_type}'")
    if not isinstance(raw, dict):
        raise PayloadError(f"Payload for '{job_type}' must be an object")
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise PayloadError(f"Invalid '{job_type}' payload: {exc}") from exc


def encode_payload(payload: JobPayload) -> dict[str, Any]:
    return payload.model_dump(mode="json")
