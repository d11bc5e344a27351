from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

EXTRA_KEYS = (
    "role",
    "service",
    "run_id",
    "court_list_id",
    "track",
    "stage",
    "attempt",
    "error_code",
    "retry_classification",
    "status_code",
    "detail",
)

# Held at WARNING or above regardless of the root level.
QUIET_LOGGERS = (
    "httpx",
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.identity",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per line; only whitelisted `extra` keys are emitted."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        payload.update(
            {key: getattr(record, key) for key in EXTRA_KEYS if getattr(record, key, None) is not None}
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str | int = logging.INFO) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
