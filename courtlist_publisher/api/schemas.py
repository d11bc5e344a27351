from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from courtlist_publisher.domain.models import StatusRecord, StoredArtifact, TrackStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    detail: str


class DispatcherMetrics(BaseModel):
    started: bool
    stopped: bool
    accepted_total: int
    rejected_total: int
    runs_total: int
    errors_total: int
    coalesced_total: int
    in_flight: int
    queue_depth: int


class HealthResponse(BaseModel):
    status: str
    role: str


class ReadyResponse(BaseModel):
    status: str
    role: str
    dispatcher_enabled: bool
    dispatcher_ready: bool
    dispatcher_metrics: DispatcherMetrics


class PublishCourtListRequest(CamelModel):
    court_list_id: str | None = Field(default=None, min_length=1, max_length=128)
    court_centre_id: str = Field(min_length=1, max_length=128)
    court_list_type: str = Field(min_length=1, max_length=64)
    publish_date: date


class CourtListStatusResponse(CamelModel):
    court_list_id: str
    court_centre_id: str
    court_list_type: str
    publish_date: date
    publish_status: TrackStatus
    file_status: TrackStatus
    file_url: str | None = None
    publish_error_message: str | None = None
    file_error_message: str | None = None
    last_updated: datetime

    @classmethod
    def from_record(cls, record: StatusRecord) -> CourtListStatusResponse:
        return cls(
            court_list_id=record.court_list_id,
            court_centre_id=record.court_centre_id,
            court_list_type=record.court_list_type,
            publish_date=record.publish_date,
            publish_status=record.publish_status,
            file_status=record.file_status,
            # Only meaningful once the file track has completed.
            file_url=record.file_url if record.file_status is TrackStatus.COMPLETED else None,
            publish_error_message=record.publish_error_message,
            file_error_message=record.file_error_message,
            last_updated=record.last_updated,
        )


class PublishCourtListResponse(CamelModel):
    status: CourtListStatusResponse
    created: bool
    run_id: str


class CourtListStatusListResponse(CamelModel):
    items: list[CourtListStatusResponse]


class StoredFileResponse(BaseModel):
    reference: str
    name: str
    url: str
    size: int | None = None

    @classmethod
    def from_artifact(cls, artifact: StoredArtifact) -> StoredFileResponse:
        return cls(reference=artifact.reference, name=artifact.name, url=artifact.url, size=artifact.size)


class StoredFileListResponse(BaseModel):
    folder: str
    items: list[StoredFileResponse]
