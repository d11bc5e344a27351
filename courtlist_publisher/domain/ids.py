from __future__ import annotations

from datetime import date
import importlib
import uuid

ulid_module = importlib.import_module("ulid")

# Namespace for court list ids derived from (court centre, list type, publish date).
COURT_LIST_ID_NAMESPACE = uuid.UUID("6f1c2b1e-3d7a-5c8e-9a41-2f0d7c5b8e13")


def new_run_id() -> str:
    return f"run_{ulid_module.new().str}"


def derive_court_list_id(*, court_centre_id: str, court_list_type: str, publish_date: date) -> str:
    key = f"{court_centre_id.strip().lower()}|{court_list_type.strip().upper()}|{publish_date.isoformat()}"
    return str(uuid.uuid5(COURT_LIST_ID_NAMESPACE, key))
