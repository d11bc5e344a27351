from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta

from courtlist_publisher.domain.models import PublicationMetadata

PROVENANCE = "COMMON_PLATFORM"
PUBLICATION_TYPE = "LIST"
LANGUAGE = "ENGLISH"
SENSITIVITY = "PUBLIC"
DISPLAY_WINDOW = timedelta(days=7)
UNKNOWN_COURT_ID = "0"


def build_publication_metadata(
    *,
    document: dict[str, object],
    hub_list_type: str,
    publish_date: date,
    now: datetime,
) -> PublicationMetadata:
    display_from = now.astimezone(UTC)
    return PublicationMetadata(
        provenance=PROVENANCE,
        type=PUBLICATION_TYPE,
        list_type=hub_list_type,
        court_id=court_id_from_document(document),
        content_date=format_hub_timestamp(datetime.combine(publish_date, time.min, tzinfo=UTC)),
        language=LANGUAGE,
        sensitivity=SENSITIVITY,
        display_from=format_hub_timestamp(display_from),
        display_to=format_hub_timestamp(display_from + DISPLAY_WINDOW),
    )


def court_id_from_document(document: dict[str, object]) -> str:
    value = document.get("courtIdNumeric")
    if isinstance(value, bool) or value is None:
        return UNKNOWN_COURT_ID
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return UNKNOWN_COURT_ID


def is_welsh_document(document: dict[str, object]) -> bool:
    return document.get("isWelsh") is True


def format_hub_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2025-01-01T00:00:00.000Z."""
    utc_value = value.astimezone(UTC).replace(tzinfo=None)
    return utc_value.isoformat(timespec="milliseconds") + "Z"


def metadata_headers(metadata: PublicationMetadata) -> dict[str, str]:
    return {
        "x-provenance": metadata.provenance,
        "x-type": metadata.type,
        "x-list-type": metadata.list_type,
        "x-court-id": metadata.court_id,
        "x-content-date": metadata.content_date,
        "x-language": metadata.language,
        "x-sensitivity": metadata.sensitivity,
        "x-display-from": metadata.display_from,
        "x-display-to": metadata.display_to,
    }
