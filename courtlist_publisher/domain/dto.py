from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from courtlist_publisher.domain.models import StatusRecord


@dataclass(frozen=True)
class RequestPublishCommand:
    court_centre_id: str
    court_list_type: str
    publish_date: date
    court_list_id: str | None = None


@dataclass(frozen=True)
class RequestPublishResult:
    record: StatusRecord
    created: bool
    run_id: str


@dataclass(frozen=True)
class CourtListQuery:
    list_type: str
    court_centre_id: str
    start_date: date
    end_date: date
    court_room_id: str | None = None
    restricted: bool = False
