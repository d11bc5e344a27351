from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date

import pytest

from courtlist_publisher.domain.dto import RequestPublishCommand
from courtlist_publisher.domain.errors import DispatchRejected, DomainValidationError, NotFound
from courtlist_publisher.domain.ids import derive_court_list_id, new_run_id
from courtlist_publisher.domain.models import PublishJob, StatusQuery, TrackStatus
from courtlist_publisher.domain.use_cases.publish import (
    find_statuses,
    get_status,
    list_statuses_by_court_centre,
    request_publish,
)
from courtlist_publisher.repositories.stub import InMemoryStatusRepository
from courtlist_publisher.workers.dispatcher import RejectingPublishDispatcher


@dataclass
class _RecordingDispatcher:
    jobs: list[PublishJob] = field(default_factory=list)

    def submit(self, job: PublishJob) -> None:
        self.jobs.append(job)


@pytest.mark.unit
def test_request_publish_upserts_and_enqueues() -> None:
    repository = InMemoryStatusRepository()
    dispatcher = _RecordingDispatcher()

    async def _run() -> None:
        result = await request_publish(
            RequestPublishCommand(
                court_list_id="L1",
                court_centre_id="C1",
                court_list_type="daily_list",
                publish_date=date(2025, 1, 1),
            ),
            repository=repository,
            dispatcher=dispatcher,
        )
        assert result.created is True
        assert result.record.court_list_type == "DAILY_LIST"
        assert result.record.publish_status == TrackStatus.PENDING
        assert result.record.file_status == TrackStatus.PENDING
        assert dispatcher.jobs == [PublishJob(court_list_id="L1", run_id=result.run_id)]

    asyncio.run(_run())


@pytest.mark.unit
def test_repeated_requests_share_one_record() -> None:
    repository = InMemoryStatusRepository()
    dispatcher = _RecordingDispatcher()
    cmd = RequestPublishCommand(court_centre_id="C1", court_list_type="STANDARD", publish_date=date(2025, 1, 1))

    async def _run() -> None:
        first = await request_publish(cmd, repository=repository, dispatcher=dispatcher)
        second = await request_publish(cmd, repository=repository, dispatcher=dispatcher)

        assert first.created is True
        assert second.created is False
        assert first.record.court_list_id == second.record.court_list_id
        assert first.record.court_list_id == derive_court_list_id(
            court_centre_id="C1",
            court_list_type="STANDARD",
            publish_date=date(2025, 1, 1),
        )
        assert len(repository.records) == 1
        assert len(dispatcher.jobs) == 2
        assert first.run_id != second.run_id

    asyncio.run(_run())


@pytest.mark.unit
def test_request_publish_validates_classification() -> None:
    async def _run() -> None:
        with pytest.raises(DomainValidationError):
            await request_publish(
                RequestPublishCommand(court_centre_id=" ", court_list_type="STANDARD", publish_date=date(2025, 1, 1)),
                repository=InMemoryStatusRepository(),
                dispatcher=_RecordingDispatcher(),
            )

    asyncio.run(_run())


@pytest.mark.unit
def test_rejected_enqueue_surfaces_but_keeps_record() -> None:
    repository = InMemoryStatusRepository()

    async def _run() -> None:
        with pytest.raises(DispatchRejected):
            await request_publish(
                RequestPublishCommand(
                    court_list_id="L1",
                    court_centre_id="C1",
                    court_list_type="STANDARD",
                    publish_date=date(2025, 1, 1),
                ),
                repository=repository,
                dispatcher=RejectingPublishDispatcher(),
            )
        record = await get_status(court_list_id="L1", repository=repository)
        assert record.file_status == TrackStatus.PENDING

    asyncio.run(_run())


@pytest.mark.unit
def test_status_queries() -> None:
    repository = InMemoryStatusRepository()

    async def _run() -> None:
        await repository.upsert(court_list_id="L1", court_centre_id="C1", court_list_type="STANDARD", publish_date=date(2025, 1, 1))
        await repository.upsert(court_list_id="L2", court_centre_id="C2", court_list_type="STANDARD", publish_date=date(2025, 1, 1))

        assert [r.court_list_id for r in await list_statuses_by_court_centre(court_centre_id="C2", repository=repository)] == ["L2"]
        found = await find_statuses(query=StatusQuery(publish_date=date(2025, 1, 1)), repository=repository)
        assert {r.court_list_id for r in found} == {"L1", "L2"}
        with pytest.raises(DomainValidationError):
            await find_statuses(query=StatusQuery(), repository=repository)
        with pytest.raises(NotFound):
            await get_status(court_list_id="missing", repository=repository)

    asyncio.run(_run())


@pytest.mark.unit
def test_derived_ids_are_stable_and_normalised() -> None:
    first = derive_court_list_id(court_centre_id="C1", court_list_type="standard", publish_date=date(2025, 1, 1))
    second = derive_court_list_id(court_centre_id=" c1 ", court_list_type="STANDARD", publish_date=date(2025, 1, 1))
    other_day = derive_court_list_id(court_centre_id="C1", court_list_type="STANDARD", publish_date=date(2025, 1, 2))

    assert first == second
    assert first != other_day
    assert new_run_id().startswith("run_")
