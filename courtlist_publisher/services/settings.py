from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from courtlist_publisher.clients.content_store import DEFAULT_SAS_EXPIRY_MINUTES
from courtlist_publisher.clients.identity import CredentialFlow
from courtlist_publisher.domain.list_types import DEFAULT_CATALOGUE_PATH
from courtlist_publisher.workers.orchestrator import DEFAULT_ARTIFACT_FOLDER
from courtlist_publisher.workers.runner import _env_int


@dataclass(frozen=True)
class StorageSettings:
    connection_string: str | None = None
    account_name: str | None = None
    container: str = "court-lists"
    account_key: str | None = None
    sas_expiry_minutes: int = DEFAULT_SAS_EXPIRY_MINUTES
    artifact_folder: str = DEFAULT_ARTIFACT_FOLDER

    @property
    def configured(self) -> bool:
        return bool(self.connection_string or self.account_name)


@dataclass(frozen=True)
class IdentitySettings:
    flow: CredentialFlow = CredentialFlow.LOCAL
    local_client_id: str | None = None
    local_scope: str | None = None
    remote_client_id: str | None = None
    remote_app_registration_id: str | None = None


@dataclass(frozen=True)
class ServiceSettings:
    database_url: str | None = None
    court_list_data_base_url: str | None = None
    document_generator_base_url: str | None = None
    publication_hub_url: str | None = None
    system_user_id: str | None = None
    list_types_file: Path = DEFAULT_CATALOGUE_PATH
    storage: StorageSettings = StorageSettings()
    identity: IdentitySettings = IdentitySettings()


def service_settings_from_env() -> ServiceSettings:
    return ServiceSettings(
        database_url=_env_str("DATABASE_URL"),
        court_list_data_base_url=_env_str("COURT_LIST_DATA_BASE_URL"),
        document_generator_base_url=_env_str("DOCUMENT_GENERATOR_BASE_URL"),
        publication_hub_url=_env_str("PUBLICATION_HUB_URL"),
        system_user_id=_env_str("SYSTEM_USER_ID"),
        list_types_file=Path(_env_str("COURT_LIST_TYPES_FILE") or DEFAULT_CATALOGUE_PATH),
        storage=StorageSettings(
            connection_string=_env_str("AZURE_STORAGE_CONNECTION_STRING"),
            account_name=_env_str("AZURE_STORAGE_ACCOUNT_NAME"),
            container=_env_str("AZURE_STORAGE_CONTAINER") or "court-lists",
            account_key=_env_str("AZURE_STORAGE_ACCOUNT_KEY"),
            sas_expiry_minutes=_env_int("AZURE_STORAGE_SAS_EXPIRY_MINUTES", DEFAULT_SAS_EXPIRY_MINUTES),
            artifact_folder=_env_str("ARTIFACT_FOLDER") or DEFAULT_ARTIFACT_FOLDER,
        ),
        identity=IdentitySettings(
            flow=parse_credential_flow(_env_str("HUB_CREDENTIAL_FLOW")),
            local_client_id=_env_str("AZURE_LOCAL_CLIENT_ID"),
            local_scope=_env_str("AZURE_LOCAL_SCOPE"),
            remote_client_id=_env_str("AZURE_REMOTE_CLIENT_ID"),
            remote_app_registration_id=_env_str("AZURE_REMOTE_APP_REGISTRATION_ID"),
        ),
    )


def parse_credential_flow(value: str | None) -> CredentialFlow:
    if value is None:
        return CredentialFlow.LOCAL
    try:
        return CredentialFlow(value.strip().lower())
    except ValueError as exc:
        supported = ", ".join(flow.value for flow in CredentialFlow)
        raise ValueError(f"Unsupported HUB_CREDENTIAL_FLOW '{value}'. Supported flows: {supported}") from exc


def _env_str(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None
