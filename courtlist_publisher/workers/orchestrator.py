from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
import logging
from typing import TypeVar

from courtlist_publisher.domain.contracts import (
    ContentStore,
    CourtListAssembler,
    HubPublisher,
    RendererClient,
    StatusRepository,
)
from courtlist_publisher.domain.dto import CourtListQuery
from courtlist_publisher.domain.error_taxonomy import classify_error, format_error_message, resolve_track_error
from courtlist_publisher.domain.errors import (
    HubRejected,
    InvalidTransition,
    NotFound,
    PublicationStageError,
    RenderingFailed,
    StageTimeout,
)
from courtlist_publisher.domain.list_types import ListTypeCatalogue
from courtlist_publisher.domain.metadata import build_publication_metadata, is_welsh_document
from courtlist_publisher.domain.models import PublishJob, StatusRecord, Track, TrackStatus

COMPONENT_ID = "workers.publication_orchestrator"
DEFAULT_ARTIFACT_FOLDER = "court-lists"
DEFAULT_STAGE_TIMEOUT_SECONDS = 60

T = TypeVar("T")
logger = logging.getLogger("runtime")


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class _ClaimLost(Exception):
    pass


@dataclass
class PublicationOrchestrator:
    """Runs the fetch, render, store and publish pipeline for one court list.

    Outcomes are recorded only as track transitions; `run` never raises
    except to propagate cancellation, and a cancelled run first fails the
    track it holds.
    Every run restarts from the file track. A track whose claim is rejected
    (another run holds a newer attempt) ends the run without further writes.
    """

    repository: StatusRepository
    assembler: CourtListAssembler
    renderer: RendererClient
    content_store: ContentStore
    hub: HubPublisher
    catalogue: ListTypeCatalogue
    stage_timeout_seconds: float = DEFAULT_STAGE_TIMEOUT_SECONDS
    artifact_folder: str = DEFAULT_ARTIFACT_FOLDER
    clock: Callable[[], datetime] = _utcnow
    # run id -> (track, attempt) currently held IN_PROGRESS by that run.
    _claims: dict[str, tuple[Track, int]] = field(default_factory=dict, init=False, repr=False)

    async def run(self, job: PublishJob) -> StatusRecord | None:
        try:
            return await self._run(job)
        except _ClaimLost:
            return None
        except asyncio.CancelledError:
            await asyncio.shield(self._abandon(job, "run cancelled during shutdown"))
            raise
        except Exception as exc:
            logger.exception(
                "publication run aborted",
                extra={"service": COMPONENT_ID, "court_list_id": job.court_list_id, "run_id": job.run_id},
            )
            await self._abandon(job, f"{type(exc).__name__}: {exc}")
            return None
        finally:
            self._claims.pop(job.run_id, None)

    async def _abandon(self, job: PublishJob, detail: str) -> None:
        """Fail the track this run still holds so it does not stay IN_PROGRESS."""
        claim = self._claims.pop(job.run_id, None)
        if claim is None:
            return
        track, attempt = claim
        try:
            await self._transition(
                job,
                track,
                TrackStatus.FAILED,
                attempt=attempt,
                error=format_error_message(code="internal_error", detail=detail),
            )
        except _ClaimLost:
            return
        except Exception:
            logger.exception(
                "failed to record abandoned run",
                extra={
                    "service": COMPONENT_ID,
                    "court_list_id": job.court_list_id,
                    "run_id": job.run_id,
                    "track": track.value,
                },
            )

    async def _run(self, job: PublishJob) -> StatusRecord | None:
        try:
            record = await self.repository.get(court_list_id=job.court_list_id)
        except NotFound:
            logger.warning(
                "publication run for unknown court list",
                extra={"service": COMPONENT_ID, "court_list_id": job.court_list_id, "run_id": job.run_id},
            )
            return None

        file_attempt = record.file_attempt + 1
        record = await self._claim(job, Track.FILE, file_attempt)

        stage = "fetch"
        try:
            document = await self._call_stage(
                stage,
                self.assembler.fetch(
                    CourtListQuery(
                        list_type=record.court_list_type,
                        court_centre_id=record.court_centre_id,
                        start_date=record.publish_date,
                        end_date=record.publish_date,
                    )
                ),
            )

            stage = "render"
            template_name = self.catalogue.template_for(
                record.court_list_type,
                welsh=is_welsh_document(document),
            )
            artifact = await self._call_stage(
                stage,
                self.renderer.render(template_name=template_name, payload=document),
            )
            if not artifact:
                raise RenderingFailed(f"document generator returned an empty document for template {template_name}")

            stage = "store"
            stored = await self._call_stage(
                stage,
                self.content_store.store(
                    folder=self.artifact_folder,
                    name=f"{record.court_list_id}.pdf",
                    payload=artifact,
                ),
            )
        except Exception as exc:
            return await self._fail(job, Track.FILE, file_attempt, stage, exc)

        record = await self._transition(
            job,
            Track.FILE,
            TrackStatus.COMPLETED,
            attempt=file_attempt,
            artifact_url=stored.url,
        )

        publish_attempt = record.publish_attempt + 1
        record = await self._claim(job, Track.PUBLISH, publish_attempt)

        stage = "publish"
        try:
            metadata = build_publication_metadata(
                document=document,
                hub_list_type=self.catalogue.resolve(record.court_list_type).hub_list_type,
                publish_date=record.publish_date,
                now=self.clock(),
            )
            status_code = await self._call_stage(stage, self.hub.publish(document=document, metadata=metadata))
            if not 200 <= status_code < 300:
                raise HubRejected(status_code)
        except Exception as exc:
            return await self._fail(job, Track.PUBLISH, publish_attempt, stage, exc)

        logger.info(
            "court list published",
            extra={
                "service": COMPONENT_ID,
                "court_list_id": job.court_list_id,
                "run_id": job.run_id,
                "status_code": status_code,
            },
        )
        return await self._transition(job, Track.PUBLISH, TrackStatus.COMPLETED, attempt=publish_attempt)

    async def _call_stage(self, stage: str, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.stage_timeout_seconds)
        except TimeoutError as exc:
            raise StageTimeout(stage, self.stage_timeout_seconds) from exc

    async def _claim(self, job: PublishJob, track: Track, attempt: int) -> StatusRecord:
        return await self._transition(job, track, TrackStatus.IN_PROGRESS, attempt=attempt)

    async def _fail(
        self,
        job: PublishJob,
        track: Track,
        attempt: int,
        stage: str,
        exc: Exception,
    ) -> StatusRecord:
        code = "internal_error"
        if isinstance(exc, PublicationStageError):
            code = resolve_track_error(track=track.value, code=exc.error_code)
        detail = f"{type(exc).__name__}: {exc}"
        logger.warning(
            "publication stage failed",
            extra={
                "service": COMPONENT_ID,
                "court_list_id": job.court_list_id,
                "run_id": job.run_id,
                "track": track.value,
                "stage": stage,
                "error_code": code,
                "retry_classification": classify_error(code),
                "status_code": getattr(exc, "status_code", None),
            },
        )
        return await self._transition(
            job,
            track,
            TrackStatus.FAILED,
            attempt=attempt,
            error=format_error_message(code=code, detail=detail),
        )

    async def _transition(
        self,
        job: PublishJob,
        track: Track,
        new_state: TrackStatus,
        *,
        attempt: int,
        error: str | None = None,
        artifact_url: str | None = None,
    ) -> StatusRecord:
        try:
            record = await self.repository.transition(
                court_list_id=job.court_list_id,
                track=track,
                new_state=new_state,
                error=error,
                artifact_url=artifact_url,
                attempt=attempt,
            )
        except InvalidTransition as exc:
            logger.warning(
                "track transition rejected",
                extra={
                    "service": COMPONENT_ID,
                    "court_list_id": job.court_list_id,
                    "run_id": job.run_id,
                    "track": track.value,
                    "stage": new_state.value,
                    "detail": str(exc),
                },
            )
            raise _ClaimLost() from exc
        if new_state is TrackStatus.IN_PROGRESS:
            self._claims[job.run_id] = (track, attempt)
        else:
            self._claims.pop(job.run_id, None)
        logger.info(
            "track transition",
            extra={
                "service": COMPONENT_ID,
                "court_list_id": job.court_list_id,
                "run_id": job.run_id,
                "track": track.value,
                "stage": new_state.value,
                "attempt": attempt,
            },
        )
        return record
