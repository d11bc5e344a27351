from __future__ import annotations

from courtlist_publisher.domain.error_taxonomy import ErrorCode


class DomainError(Exception):
    pass


class DomainValidationError(DomainError):
    pass


class DomainInvariantError(DomainError):
    pass


class DomainDependencyError(DomainError):
    pass


class NotFound(DomainError):
    def __init__(self, court_list_id: str) -> None:
        super().__init__(f"court list status not found: {court_list_id}")
        self.court_list_id = court_list_id


class InvalidTransition(DomainInvariantError):
    def __init__(self, *, court_list_id: str, track: str, from_state: str, to_state: str, reason: str) -> None:
        super().__init__(
            f"invalid {track} transition for {court_list_id}: {from_state} -> {to_state} ({reason})"
        )
        self.court_list_id = court_list_id
        self.track = track
        self.from_state = from_state
        self.to_state = to_state


class DispatchRejected(DomainDependencyError):
    pass


class ArtifactNotFound(DomainError):
    def __init__(self, reference: str) -> None:
        super().__init__(f"artifact not found: {reference}")
        self.reference = reference


class PublicationStageError(DomainDependencyError):
    """Failure of one external pipeline call, carrying its canonical error code."""

    error_code: ErrorCode = "internal_error"


class UpstreamFetchFailed(PublicationStageError):
    error_code: ErrorCode = "upstream_fetch_failed"


class RenderingFailed(PublicationStageError):
    error_code: ErrorCode = "rendering_failed"


class StorageFailed(PublicationStageError):
    error_code: ErrorCode = "storage_failed"


class AuthenticationFailed(PublicationStageError):
    error_code: ErrorCode = "authentication_failed"


class HubUnreachable(PublicationStageError):
    error_code: ErrorCode = "hub_transport_failed"


class HubRejected(PublicationStageError):
    error_code: ErrorCode = "hub_rejected"

    def __init__(self, status_code: int, body: str = "") -> None:
        detail = f"hub responded with HTTP {status_code}"
        if body:
            detail = f"{detail}: {body}"
        super().__init__(detail)
        self.status_code = status_code
        self.body = body


class StageTimeout(PublicationStageError):
    error_code: ErrorCode = "stage_timeout"

    def __init__(self, stage: str, timeout_seconds: float) -> None:
        super().__init__(f"{stage} stage exceeded {timeout_seconds:g}s")
        self.stage = stage
        self.timeout_seconds = timeout_seconds
