from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

# Canonical error vocabulary for both tracks.
ErrorCode = Literal[
    "upstream_fetch_failed",
    "rendering_failed",
    "storage_failed",
    "authentication_failed",
    "hub_rejected",
    "hub_transport_failed",
    "stage_timeout",
    "internal_error",
]

RetryClassification = Literal["recoverable", "terminal"]

CANONICAL_ERROR_CODES: tuple[ErrorCode, ...] = (
    "upstream_fetch_failed",
    "rendering_failed",
    "storage_failed",
    "authentication_failed",
    "hub_rejected",
    "hub_transport_failed",
    "stage_timeout",
    "internal_error",
)

# Errors worth re-submitting the publish request for. Nothing in this service
# retries on its own; external retry tooling reads this classification.
RECOVERABLE_ERROR_CODES: frozenset[ErrorCode] = frozenset(
    {
        "upstream_fetch_failed",
        "rendering_failed",
        "storage_failed",
        "authentication_failed",
        "hub_transport_failed",
        "stage_timeout",
        "internal_error",
    }
)

# Track-specific allowlist. If a track emits a code outside this map,
# it is normalized to internal_error by resolve_track_error().
TRACK_ERROR_MAP: Mapping[str, frozenset[ErrorCode]] = {
    "file": frozenset(
        {
            "upstream_fetch_failed",
            "rendering_failed",
            "storage_failed",
            "stage_timeout",
            "internal_error",
        }
    ),
    "publish": frozenset(
        {
            "authentication_failed",
            "hub_rejected",
            "hub_transport_failed",
            "stage_timeout",
            "internal_error",
        }
    ),
}


def is_canonical_error_code(code: str) -> bool:
    return code in CANONICAL_ERROR_CODES


def classify_error(code: ErrorCode) -> RetryClassification:
    if code in RECOVERABLE_ERROR_CODES:
        return "recoverable"
    return "terminal"


def resolve_track_error(*, track: str, code: str) -> ErrorCode:
    allowed = TRACK_ERROR_MAP.get(track, frozenset({"internal_error"}))
    if code in allowed and is_canonical_error_code(code):
        return code
    return "internal_error"


def format_error_message(*, code: ErrorCode, detail: str) -> str:
    detail = detail.strip()
    if not detail:
        return code
    return f"{code}: {detail}"
