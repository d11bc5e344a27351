from __future__ import annotations

from dataclasses import dataclass, field

import httpx

DEFAULT_TIMEOUT_SECONDS = 30


@dataclass
class AsyncHttpClientHolder:
    """Lazily created httpx.AsyncClient shared by one collaborator client."""

    base_url: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    transport: httpx.AsyncBaseTransport | None = None
    _client: httpx.AsyncClient | None = field(default=None, init=False, repr=False)

    def get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self.transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def response_excerpt(response: httpx.Response, *, limit: int = 500) -> str:
    text = response.text.strip()
    if len(text) > limit:
        return f"{text[:limit]}..."
    return text
