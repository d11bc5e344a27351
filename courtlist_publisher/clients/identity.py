from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
import logging
from typing import Any

from azure.core.exceptions import AzureError
from azure.identity import ManagedIdentityCredential

from courtlist_publisher.domain.errors import AuthenticationFailed

logger = logging.getLogger("runtime")

CredentialFactory = Callable[[str | None], Any]


class CredentialFlow(StrEnum):
    LOCAL = "local"
    REMOTE = "remote"


def remote_scope(app_registration_id: str) -> str:
    return f"api://{app_registration_id}/.default"


def _managed_identity_credential(client_id: str | None) -> Any:
    if client_id:
        return ManagedIdentityCredential(client_id=client_id)
    return ManagedIdentityCredential()


@dataclass(frozen=True)
class ManagedIdentityTokenProvider:
    """Bearer tokens for the publication hub.

    The flow is fixed at construction. Every call builds a fresh credential and
    asks for a fresh token; nothing is cached between calls.
    """

    flow: CredentialFlow
    local_client_id: str | None = None
    local_scope: str | None = None
    remote_client_id: str | None = None
    remote_app_registration_id: str | None = None
    credential_factory: CredentialFactory = _managed_identity_credential

    def resolve(self) -> tuple[str | None, str]:
        if self.flow is CredentialFlow.LOCAL:
            if not self.local_scope:
                raise AuthenticationFailed("local credential flow requires AZURE_LOCAL_SCOPE")
            return self.local_client_id, self.local_scope
        if not self.remote_app_registration_id:
            raise AuthenticationFailed("remote credential flow requires AZURE_REMOTE_APP_REGISTRATION_ID")
        return self.remote_client_id, remote_scope(self.remote_app_registration_id)

    async def get_token(self) -> str:
        client_id, scope = self.resolve()
        try:
            token = await asyncio.to_thread(self._fetch_token, client_id, scope)
        except (AzureError, ValueError, OSError) as exc:
            logger.warning(
                "token acquisition failed",
                extra={"service": "clients.identity", "error_code": AuthenticationFailed.error_code},
            )
            raise AuthenticationFailed(f"{self.flow.value} credential flow failed: {exc}") from exc
        if not token:
            raise AuthenticationFailed(f"{self.flow.value} credential flow returned an empty token")
        return token

    def _fetch_token(self, client_id: str | None, scope: str) -> str:
        credential = self.credential_factory(client_id)
        try:
            return credential.get_token(scope).token
        finally:
            close = getattr(credential, "close", None)
            if callable(close):
                close()
