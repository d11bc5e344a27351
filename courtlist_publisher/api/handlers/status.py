from __future__ import annotations

from datetime import date

from courtlist_publisher.api.handlers.deps import ApiDeps
from courtlist_publisher.api.schemas import CourtListStatusListResponse, CourtListStatusResponse
from courtlist_publisher.domain.models import StatusQuery
from courtlist_publisher.domain.use_cases.publish import find_statuses, get_status, list_statuses_by_court_centre


async def get_court_list_status_handler(*, court_list_id: str, api_deps: ApiDeps) -> CourtListStatusResponse:
    record = await get_status(court_list_id=court_list_id, repository=api_deps.repository)
    return CourtListStatusResponse.from_record(record)


async def find_court_list_statuses_handler(
    *,
    api_deps: ApiDeps,
    court_centre_id: str | None = None,
    court_list_id: str | None = None,
    publish_date: date | None = None,
    court_list_type: str | None = None,
) -> CourtListStatusListResponse:
    if court_centre_id is not None and court_list_id is None and publish_date is None and court_list_type is None:
        records = await list_statuses_by_court_centre(
            court_centre_id=court_centre_id,
            repository=api_deps.repository,
        )
    else:
        records = await find_statuses(
            query=StatusQuery(
                court_list_id=court_list_id,
                court_centre_id=court_centre_id,
                publish_date=publish_date,
                court_list_type=court_list_type,
            ),
            repository=api_deps.repository,
        )
    return CourtListStatusListResponse(items=[CourtListStatusResponse.from_record(record) for record in records])
