from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from courtlist_publisher.domain.errors import InvalidTransition
from courtlist_publisher.domain.models import StatusRecord, Track, TrackStatus

# Forward moves of a single track within one attempt.
ALLOWED_TRANSITIONS: dict[TrackStatus, set[TrackStatus]] = {
    TrackStatus.PENDING: {TrackStatus.IN_PROGRESS},
    TrackStatus.IN_PROGRESS: {TrackStatus.COMPLETED, TrackStatus.FAILED},
    TrackStatus.FAILED: {TrackStatus.IN_PROGRESS},
    TrackStatus.COMPLETED: set(),
}

# States a track may leave for IN_PROGRESS only when a fresh attempt is claimed.
RESTARTABLE_WITH_NEW_ATTEMPT: frozenset[TrackStatus] = frozenset(
    {TrackStatus.COMPLETED, TrackStatus.IN_PROGRESS}
)


def apply_transition(
    record: StatusRecord,
    *,
    track: Track,
    new_state: TrackStatus,
    now: datetime,
    error: str | None = None,
    artifact_url: str | None = None,
    attempt: int | None = None,
) -> StatusRecord:
    """Return the record with one track moved to `new_state`.

    Entering IN_PROGRESS claims an attempt: an explicit `attempt` must be greater
    than the stored one, otherwise the stored attempt is incremented and only
    PENDING/FAILED may be left. Leaving IN_PROGRESS with an explicit `attempt`
    requires it to match the stored one, so a stale run cannot overwrite a
    newer one. Raises InvalidTransition without touching the input record.
    """
    current = record.status_of(track)
    stored_attempt = record.attempt_of(track)

    def _reject(reason: str) -> InvalidTransition:
        return InvalidTransition(
            court_list_id=record.court_list_id,
            track=track.value,
            from_state=current.value,
            to_state=new_state.value,
            reason=reason,
        )

    if artifact_url is not None and not (track is Track.FILE and new_state is TrackStatus.COMPLETED):
        raise _reject("artifact reference is only accepted on file completion")

    if new_state is TrackStatus.IN_PROGRESS:
        if attempt is not None:
            if attempt <= stored_attempt:
                raise _reject(f"attempt {attempt} is not newer than {stored_attempt}")
            if current not in RESTARTABLE_WITH_NEW_ATTEMPT and new_state not in ALLOWED_TRANSITIONS[current]:
                raise _reject("transition is not allowed")
            next_attempt = attempt
        elif new_state in ALLOWED_TRANSITIONS[current]:
            next_attempt = stored_attempt + 1
        else:
            raise _reject("a new attempt is required to restart this track")
        return _with_track(
            record,
            track=track,
            status=new_state,
            attempt=next_attempt,
            now=now,
            clear_file_url=track is Track.FILE,
        )

    if new_state not in ALLOWED_TRANSITIONS[current]:
        raise _reject("transition is not allowed")
    if attempt is not None and attempt != stored_attempt:
        raise _reject(f"attempt {attempt} is stale, current attempt is {stored_attempt}")

    if new_state is TrackStatus.COMPLETED:
        if track is Track.FILE and not artifact_url:
            raise _reject("file completion requires an artifact reference")
        updated = _with_track(record, track=track, status=new_state, attempt=stored_attempt, now=now)
        if track is Track.FILE:
            return replace(updated, file_url=artifact_url, file_error_message=None)
        return replace(updated, publish_error_message=None)

    message = (error or "").strip() or "unknown error"
    updated = _with_track(
        record,
        track=track,
        status=new_state,
        attempt=stored_attempt,
        now=now,
        clear_file_url=track is Track.FILE,
    )
    if track is Track.FILE:
        return replace(updated, file_error_message=message)
    return replace(updated, publish_error_message=message)


def monotonic_timestamp(previous: datetime, now: datetime) -> datetime:
    return now if now > previous else previous


def _with_track(
    record: StatusRecord,
    *,
    track: Track,
    status: TrackStatus,
    attempt: int,
    now: datetime,
    clear_file_url: bool = False,
) -> StatusRecord:
    last_updated = monotonic_timestamp(record.last_updated, now)
    if track is Track.PUBLISH:
        return replace(record, publish_status=status, publish_attempt=attempt, last_updated=last_updated)
    updated = replace(record, file_status=status, file_attempt=attempt, last_updated=last_updated)
    if clear_file_url:
        updated = replace(updated, file_url=None)
    return updated
