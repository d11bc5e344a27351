from __future__ import annotations

from courtlist_publisher.api.handlers.deps import ApiDeps
from courtlist_publisher.api.schemas import (
    CourtListStatusResponse,
    PublishCourtListRequest,
    PublishCourtListResponse,
)
from courtlist_publisher.domain.dto import RequestPublishCommand
from courtlist_publisher.domain.use_cases.publish import request_publish


async def publish_court_list_handler(
    request: PublishCourtListRequest,
    *,
    api_deps: ApiDeps,
) -> PublishCourtListResponse:
    result = await request_publish(
        RequestPublishCommand(
            court_list_id=request.court_list_id,
            court_centre_id=request.court_centre_id,
            court_list_type=request.court_list_type,
            publish_date=request.publish_date,
        ),
        repository=api_deps.repository,
        dispatcher=api_deps.dispatcher,
    )
    return PublishCourtListResponse(
        status=CourtListStatusResponse.from_record(result.record),
        created=result.created,
        run_id=result.run_id,
    )
