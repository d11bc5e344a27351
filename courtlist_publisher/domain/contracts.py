from __future__ import annotations

from datetime import date
from typing import Protocol, runtime_checkable

from courtlist_publisher.domain.dto import CourtListQuery
from courtlist_publisher.domain.models import (
    PublicationMetadata,
    PublishJob,
    StatusQuery,
    StatusRecord,
    StoredArtifact,
    Track,
    TrackStatus,
    UpsertResult,
)

ARTIFACT_CONTENT_TYPE = "application/pdf"


@runtime_checkable
class StatusRepository(Protocol):
    """Durable two-track status record per court list id.

    Every write must be atomic per record; the Postgres implementation uses
    SELECT ... FOR UPDATE inside a transaction.
    """

    async def upsert(
        self,
        *,
        court_list_id: str,
        court_centre_id: str,
        court_list_type: str,
        publish_date: date,
    ) -> UpsertResult: ...

    async def get(self, *, court_list_id: str) -> StatusRecord: ...

    async def find(self, *, query: StatusQuery) -> list[StatusRecord]: ...

    async def list_by_court_centre(self, *, court_centre_id: str) -> list[StatusRecord]: ...

    async def transition(
        self,
        *,
        court_list_id: str,
        track: Track,
        new_state: TrackStatus,
        error: str | None = None,
        artifact_url: str | None = None,
        attempt: int | None = None,
    ) -> StatusRecord: ...


@runtime_checkable
class CourtListAssembler(Protocol):
    async def fetch(self, query: CourtListQuery) -> dict[str, object]: ...


@runtime_checkable
class RendererClient(Protocol):
    async def render(self, *, template_name: str, payload: dict[str, object]) -> bytes: ...


@runtime_checkable
class ContentStore(Protocol):
    """Blob-style store keyed by folder + name; concurrent writes are last-write-wins."""

    async def store(
        self,
        *,
        folder: str,
        name: str,
        payload: bytes,
        content_type: str = ARTIFACT_CONTENT_TYPE,
    ) -> StoredArtifact: ...

    async def fetch(self, *, reference: str) -> bytes: ...

    async def list(self, *, folder: str) -> list[StoredArtifact]: ...


@runtime_checkable
class TokenProvider(Protocol):
    async def get_token(self) -> str: ...


@runtime_checkable
class HubPublisher(Protocol):
    async def publish(self, *, document: dict[str, object], metadata: PublicationMetadata) -> int: ...


@runtime_checkable
class PublishDispatcher(Protocol):
    def submit(self, job: PublishJob) -> None: ...
