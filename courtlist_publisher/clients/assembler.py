from __future__ import annotations

from dataclasses import dataclass

import httpx

from courtlist_publisher.clients.http_base import AsyncHttpClientHolder, response_excerpt
from courtlist_publisher.domain.dto import CourtListQuery
from courtlist_publisher.domain.errors import UpstreamFetchFailed

COURT_LIST_PAYLOAD_PATH = "/listing-query-api/query/api/rest/listing/courtlistpayload"
COURT_LIST_PAYLOAD_MEDIA_TYPE = "application/vnd.listing.search.court.list.payload+json"


@dataclass
class HttpCourtListAssembler:
    http: AsyncHttpClientHolder
    system_user_id: str | None = None

    async def fetch(self, query: CourtListQuery) -> dict[str, object]:
        params: dict[str, str] = {
            "listId": query.list_type,
            "courtCentreId": query.court_centre_id,
            "startDate": query.start_date.isoformat(),
            "endDate": query.end_date.isoformat(),
            "restricted": "true" if query.restricted else "false",
        }
        if query.court_room_id:
            params["courtRoomId"] = query.court_room_id
        headers = {"Accept": COURT_LIST_PAYLOAD_MEDIA_TYPE}
        if self.system_user_id:
            headers["CJSCPPUID"] = self.system_user_id

        try:
            response = await self.http.get_client().get(COURT_LIST_PAYLOAD_PATH, params=params, headers=headers)
        except httpx.TimeoutException as exc:
            raise UpstreamFetchFailed(f"court list data request timed out: {exc}") from exc
        except httpx.RequestError as exc:
            raise UpstreamFetchFailed(f"court list data request failed: {exc}") from exc

        if not response.is_success:
            raise UpstreamFetchFailed(
                f"court list data responded with HTTP {response.status_code}: {response_excerpt(response)}"
            )
        try:
            document = response.json()
        except ValueError as exc:
            raise UpstreamFetchFailed("court list data response is not valid JSON") from exc
        if not isinstance(document, dict):
            raise UpstreamFetchFailed("court list data response must be a JSON object")
        return document
