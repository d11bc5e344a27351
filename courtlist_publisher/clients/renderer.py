from __future__ import annotations

from dataclasses import dataclass

import httpx

from courtlist_publisher.clients.http_base import AsyncHttpClientHolder, response_excerpt
from courtlist_publisher.domain.errors import RenderingFailed

RENDER_PATH = "/systemdocgenerator-command-api/command/api/rest/systemdocgenerator/render"
RENDER_MEDIA_TYPE = "application/vnd.systemdocgenerator.render+json"
CONVERSION_FORMAT = "pdf"


@dataclass
class HttpRendererClient:
    """Document generator client. No retries; the caller decides what to do with a failure."""

    http: AsyncHttpClientHolder
    system_user_id: str | None = None

    async def render(self, *, template_name: str, payload: dict[str, object]) -> bytes:
        headers = {"Content-Type": RENDER_MEDIA_TYPE}
        if self.system_user_id:
            headers["CJSCPPUID"] = self.system_user_id
        body = {
            "templateName": template_name,
            "templatePayload": payload,
            "conversionFormat": CONVERSION_FORMAT,
        }
        try:
            response = await self.http.get_client().post(RENDER_PATH, json=body, headers=headers)
        except httpx.TimeoutException as exc:
            raise RenderingFailed(f"document generator timed out for template {template_name}: {exc}") from exc
        except httpx.RequestError as exc:
            raise RenderingFailed(f"document generator unreachable for template {template_name}: {exc}") from exc

        if not response.is_success:
            raise RenderingFailed(
                f"document generator responded with HTTP {response.status_code} "
                f"for template {template_name}: {response_excerpt(response)}"
            )
        content = response.content
        if not content:
            raise RenderingFailed(f"document generator returned an empty document for template {template_name}")
        return content
