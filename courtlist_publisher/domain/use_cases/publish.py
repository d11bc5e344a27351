from __future__ import annotations

import logging

from courtlist_publisher.domain.contracts import PublishDispatcher, StatusRepository
from courtlist_publisher.domain.dto import RequestPublishCommand, RequestPublishResult
from courtlist_publisher.domain.errors import DomainValidationError
from courtlist_publisher.domain.ids import derive_court_list_id, new_run_id
from courtlist_publisher.domain.models import PublishJob, StatusQuery, StatusRecord

COMPONENT_ID_REQUEST = "domain.court_list.request_publish"

logger = logging.getLogger("runtime")


async def request_publish(
    cmd: RequestPublishCommand,
    *,
    repository: StatusRepository,
    dispatcher: PublishDispatcher,
) -> RequestPublishResult:
    """Upsert the status record and hand the run to the dispatcher.

    Returns as soon as the job is enqueued. Enqueue failure surfaces as
    DispatchRejected; the upserted record stays in place either way.
    """
    court_centre_id = cmd.court_centre_id.strip()
    court_list_type = cmd.court_list_type.strip().upper()
    if not court_centre_id:
        raise DomainValidationError("court_centre_id must be non-empty")
    if not court_list_type:
        raise DomainValidationError("court_list_type must be non-empty")

    court_list_id = (cmd.court_list_id or "").strip() or derive_court_list_id(
        court_centre_id=court_centre_id,
        court_list_type=court_list_type,
        publish_date=cmd.publish_date,
    )

    upserted = await repository.upsert(
        court_list_id=court_list_id,
        court_centre_id=court_centre_id,
        court_list_type=court_list_type,
        publish_date=cmd.publish_date,
    )
    run_id = new_run_id()
    dispatcher.submit(PublishJob(court_list_id=court_list_id, run_id=run_id))
    logger.info(
        "publish requested",
        extra={
            "service": COMPONENT_ID_REQUEST,
            "court_list_id": court_list_id,
            "run_id": run_id,
        },
    )
    return RequestPublishResult(record=upserted.record, created=upserted.created, run_id=run_id)


async def get_status(*, court_list_id: str, repository: StatusRepository) -> StatusRecord:
    return await repository.get(court_list_id=court_list_id)


async def list_statuses_by_court_centre(
    *,
    court_centre_id: str,
    repository: StatusRepository,
) -> list[StatusRecord]:
    return await repository.list_by_court_centre(court_centre_id=court_centre_id)


async def find_statuses(*, query: StatusQuery, repository: StatusRepository) -> list[StatusRecord]:
    if (
        query.court_list_id is None
        and query.court_centre_id is None
        and query.publish_date is None
        and query.court_list_type is None
    ):
        raise DomainValidationError("at least one status filter is required")
    return await repository.find(query=query)
