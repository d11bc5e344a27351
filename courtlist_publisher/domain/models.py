from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum


# Canonical per-track states.
#
# IMPORTANT:
# - Keep this enum synchronized with courtlist_publisher/domain/lifecycle.py
#   (ALLOWED_TRANSITIONS).
# - Keep this enum synchronized with the DB status CHECK constraints in
#   db/migrations/000001_bootstrap.up.sql.
class TrackStatus(StrEnum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Track(StrEnum):
    PUBLISH = "publish"
    FILE = "file"


@dataclass(frozen=True)
class StatusRecord:
    court_list_id: str
    court_centre_id: str
    court_list_type: str
    publish_date: date
    publish_status: TrackStatus
    file_status: TrackStatus
    last_updated: datetime
    publish_attempt: int = 0
    file_attempt: int = 0
    file_url: str | None = None
    publish_error_message: str | None = None
    file_error_message: str | None = None

    def status_of(self, track: Track) -> TrackStatus:
        if track is Track.PUBLISH:
            return self.publish_status
        return self.file_status

    def attempt_of(self, track: Track) -> int:
        if track is Track.PUBLISH:
            return self.publish_attempt
        return self.file_attempt


@dataclass(frozen=True)
class UpsertResult:
    record: StatusRecord
    created: bool


@dataclass(frozen=True)
class StatusQuery:
    court_list_id: str | None = None
    court_centre_id: str | None = None
    publish_date: date | None = None
    court_list_type: str | None = None


@dataclass(frozen=True)
class PublishJob:
    court_list_id: str
    run_id: str


@dataclass(frozen=True)
class PublicationMetadata:
    provenance: str
    type: str
    list_type: str
    court_id: str
    content_date: str
    language: str
    sensitivity: str
    display_from: str
    display_to: str


@dataclass(frozen=True)
class StoredArtifact:
    reference: str
    url: str
    size: int | None = None

    @property
    def name(self) -> str:
        return self.reference.rsplit("/", maxsplit=1)[-1]
