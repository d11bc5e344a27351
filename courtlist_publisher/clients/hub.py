from __future__ import annotations

from dataclasses import dataclass
import json

import httpx

from courtlist_publisher.clients.http_base import AsyncHttpClientHolder, response_excerpt
from courtlist_publisher.domain.contracts import TokenProvider
from courtlist_publisher.domain.errors import HubRejected, HubUnreachable
from courtlist_publisher.domain.metadata import metadata_headers
from courtlist_publisher.domain.models import PublicationMetadata


@dataclass
class HttpHubPublisher:
    """POSTs a court list document to the publication hub.

    A token is fetched before every call; AuthenticationFailed from the token
    provider propagates and the hub is not contacted.
    """

    http: AsyncHttpClientHolder
    token_provider: TokenProvider

    async def publish(self, *, document: dict[str, object], metadata: PublicationMetadata) -> int:
        token = await self.token_provider.get_token()
        headers = {
            **metadata_headers(metadata),
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Ocp-Apim-Trace": "true",
        }
        content = json.dumps(document).encode("utf-8")
        try:
            response = await self.http.get_client().post(self.http.base_url, content=content, headers=headers)
        except httpx.TimeoutException as exc:
            raise HubUnreachable(f"publication hub timed out: {exc}") from exc
        except httpx.RequestError as exc:
            raise HubUnreachable(f"publication hub unreachable: {exc}") from exc

        if not response.is_success:
            raise HubRejected(response.status_code, response_excerpt(response))
        return response.status_code
