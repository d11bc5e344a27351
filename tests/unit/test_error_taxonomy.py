import pytest

from courtlist_publisher.domain.error_taxonomy import (
    classify_error,
    format_error_message,
    is_canonical_error_code,
    resolve_track_error,
)
from courtlist_publisher.domain.errors import (
    AuthenticationFailed,
    HubRejected,
    HubUnreachable,
    PublicationStageError,
    RenderingFailed,
    StageTimeout,
    StorageFailed,
    UpstreamFetchFailed,
)


@pytest.mark.unit
def test_canonical_error_codes_are_enforced() -> None:
    assert is_canonical_error_code("rendering_failed") is True
    assert is_canonical_error_code("unknown_error") is False


@pytest.mark.unit
def test_track_error_mapping_restricts_invalid_codes() -> None:
    assert resolve_track_error(track="file", code="storage_failed") == "storage_failed"
    assert resolve_track_error(track="file", code="hub_rejected") == "internal_error"
    assert resolve_track_error(track="publish", code="authentication_failed") == "authentication_failed"
    assert resolve_track_error(track="publish", code="not_a_code") == "internal_error"
    assert resolve_track_error(track="unknown", code="stage_timeout") == "internal_error"


@pytest.mark.unit
def test_retry_classification_distinguishes_terminal_and_recoverable() -> None:
    assert classify_error("hub_transport_failed") == "recoverable"
    assert classify_error("stage_timeout") == "recoverable"
    assert classify_error("hub_rejected") == "terminal"


@pytest.mark.unit
def test_stage_errors_carry_their_codes() -> None:
    assert UpstreamFetchFailed("x").error_code == "upstream_fetch_failed"
    assert RenderingFailed("x").error_code == "rendering_failed"
    assert StorageFailed("x").error_code == "storage_failed"
    assert AuthenticationFailed("x").error_code == "authentication_failed"
    assert HubUnreachable("x").error_code == "hub_transport_failed"
    assert StageTimeout("render", 0.5).error_code == "stage_timeout"
    assert PublicationStageError("x").error_code == "internal_error"


@pytest.mark.unit
def test_hub_rejection_message_carries_status_and_body() -> None:
    exc = HubRejected(502, "Bad Gateway")

    assert exc.status_code == 502
    assert str(exc) == "hub responded with HTTP 502: Bad Gateway"
    assert str(HubRejected(401)) == "hub responded with HTTP 401"


@pytest.mark.unit
def test_error_message_format() -> None:
    assert format_error_message(code="storage_failed", detail=" blob down ") == "storage_failed: blob down"
    assert format_error_message(code="internal_error", detail="") == "internal_error"
