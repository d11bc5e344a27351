from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime

from courtlist_publisher.domain.errors import NotFound
from courtlist_publisher.domain.lifecycle import apply_transition
from courtlist_publisher.domain.models import (
    StatusQuery,
    StatusRecord,
    Track,
    TrackStatus,
    UpsertResult,
)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class InMemoryStatusRepository:
    """Non-network status store with per-process atomicity."""

    records: dict[str, StatusRecord] = field(default_factory=dict)
    transitions: list[tuple[str, str, str]] = field(default_factory=list)
    clock: Callable[[], datetime] = _utcnow
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    async def upsert(
        self,
        *,
        court_list_id: str,
        court_centre_id: str,
        court_list_type: str,
        publish_date: date,
    ) -> UpsertResult:
        async with self._lock:
            existing = self.records.get(court_list_id)
            if existing is not None:
                return UpsertResult(record=existing, created=False)
            record = StatusRecord(
                court_list_id=court_list_id,
                court_centre_id=court_centre_id,
                court_list_type=court_list_type,
                publish_date=publish_date,
                publish_status=TrackStatus.PENDING,
                file_status=TrackStatus.PENDING,
                last_updated=self.clock(),
            )
            self.records[court_list_id] = record
            return UpsertResult(record=record, created=True)

    async def get(self, *, court_list_id: str) -> StatusRecord:
        record = self.records.get(court_list_id)
        if record is None:
            raise NotFound(court_list_id)
        return record

    async def find(self, *, query: StatusQuery) -> list[StatusRecord]:
        items = [record for record in self.records.values() if _matches(record, query)]
        items.sort(key=lambda record: record.last_updated, reverse=True)
        return items

    async def list_by_court_centre(self, *, court_centre_id: str) -> list[StatusRecord]:
        return await self.find(query=StatusQuery(court_centre_id=court_centre_id))

    async def transition(
        self,
        *,
        court_list_id: str,
        track: Track,
        new_state: TrackStatus,
        error: str | None = None,
        artifact_url: str | None = None,
        attempt: int | None = None,
    ) -> StatusRecord:
        async with self._lock:
            current = self.records.get(court_list_id)
            if current is None:
                raise NotFound(court_list_id)
            updated = apply_transition(
                current,
                track=track,
                new_state=new_state,
                now=self.clock(),
                error=error,
                artifact_url=artifact_url,
                attempt=attempt,
            )
            self.records[court_list_id] = updated
            self.transitions.append((court_list_id, track.value, new_state.value))
            return updated


def _matches(record: StatusRecord, query: StatusQuery) -> bool:
    if query.court_list_id is not None and record.court_list_id != query.court_list_id:
        return False
    if query.court_centre_id is not None and record.court_centre_id != query.court_centre_id:
        return False
    if query.publish_date is not None and record.publish_date != query.publish_date:
        return False
    if query.court_list_type is not None and record.court_list_type != query.court_list_type.upper():
        return False
    return True
