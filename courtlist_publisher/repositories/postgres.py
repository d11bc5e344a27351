from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime
import importlib
from typing import Any

from courtlist_publisher.domain.errors import DomainInvariantError, NotFound
from courtlist_publisher.domain.lifecycle import apply_transition
from courtlist_publisher.domain.models import (
    StatusQuery,
    StatusRecord,
    Track,
    TrackStatus,
    UpsertResult,
)
from courtlist_publisher.repositories.sql_loader import load_sql

try:
    asyncpg_module = importlib.import_module("asyncpg")
except ModuleNotFoundError:  # pragma: no cover
    asyncpg_module = None  # type: ignore[assignment]


SQL_INSERT_STATUS = load_sql("insert_status.sql")
SQL_GET_STATUS = load_sql("get_status.sql")
SQL_GET_STATUS_FOR_UPDATE = load_sql("get_status_for_update.sql")
SQL_FIND_STATUSES = load_sql("find_statuses.sql")
SQL_UPDATE_STATUS = load_sql("update_status.sql")


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class AsyncpgPoolManager:
    dsn: str
    pool: Any | None = None
    min_size: int = 1
    max_size: int = 5

    async def startup(self) -> None:
        if asyncpg_module is None:  # pragma: no cover
            raise RuntimeError("asyncpg is required for postgres repository mode")
        self.pool = await asyncpg_module.create_pool(
            dsn=self.dsn,
            min_size=self.min_size,
            max_size=self.max_size,
        )

    async def shutdown(self) -> None:
        if self.pool is None:
            return
        await self.pool.close()
        self.pool = None


@dataclass
class PostgresStatusRepository:
    """Status store on a single court_list_status row per court list id.

    Transitions lock the row (SELECT ... FOR UPDATE) and validate the move with
    the same lifecycle rules as the in-memory store before writing it back.
    """

    pool_manager: AsyncpgPoolManager
    clock: Callable[[], datetime] = _utcnow

    def _pool(self) -> Any:
        if self.pool_manager.pool is None:
            raise RuntimeError("postgres pool is not initialized")
        return self.pool_manager.pool

    async def upsert(
        self,
        *,
        court_list_id: str,
        court_centre_id: str,
        court_list_type: str,
        publish_date: date,
    ) -> UpsertResult:
        pool = self._pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    SQL_INSERT_STATUS,
                    court_list_id,
                    court_centre_id,
                    court_list_type,
                    publish_date,
                )
                if row is not None:
                    return UpsertResult(record=_record_from_row(row), created=True)
                existing = await conn.fetchrow(SQL_GET_STATUS, court_list_id)
        if existing is None:
            raise DomainInvariantError(f"failed to upsert court list status: {court_list_id}")
        return UpsertResult(record=_record_from_row(existing), created=False)

    async def get(self, *, court_list_id: str) -> StatusRecord:
        pool = self._pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(SQL_GET_STATUS, court_list_id)
        if row is None:
            raise NotFound(court_list_id)
        return _record_from_row(row)

    async def find(self, *, query: StatusQuery) -> list[StatusRecord]:
        court_list_type = query.court_list_type.upper() if query.court_list_type is not None else None
        pool = self._pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(
                SQL_FIND_STATUSES,
                query.court_list_id,
                query.court_centre_id,
                query.publish_date,
                court_list_type,
            )
        return [_record_from_row(row) for row in rows]

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
        pool = self._pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(SQL_GET_STATUS_FOR_UPDATE, court_list_id)
                if row is None:
                    raise NotFound(court_list_id)
                # Raises InvalidTransition before any write; the transaction rolls back.
                updated = apply_transition(
                    _record_from_row(row),
                    track=track,
                    new_state=new_state,
                    now=self.clock(),
                    error=error,
                    artifact_url=artifact_url,
                    attempt=attempt,
                )
                written = await conn.fetchrow(
                    SQL_UPDATE_STATUS,
                    court_list_id,
                    updated.publish_status.value,
                    updated.file_status.value,
                    updated.publish_attempt,
                    updated.file_attempt,
                    updated.file_url,
                    updated.publish_error_message,
                    updated.file_error_message,
                    updated.last_updated,
                )
        if written is None:
            raise DomainInvariantError(f"failed to persist transition for {court_list_id}")
        return _record_from_row(written)


def _record_from_row(row: Any) -> StatusRecord:
    return StatusRecord(
        court_list_id=row["court_list_id"],
        court_centre_id=row["court_centre_id"],
        court_list_type=row["court_list_type"],
        publish_date=row["publish_date"],
        publish_status=TrackStatus(row["publish_status"]),
        file_status=TrackStatus(row["file_status"]),
        last_updated=row["last_updated"],
        publish_attempt=int(row["publish_attempt"]),
        file_attempt=int(row["file_attempt"]),
        file_url=row["file_url"],
        publish_error_message=row["publish_error_message"],
        file_error_message=row["file_error_message"],
    )
