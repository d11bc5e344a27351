from __future__ import annotations

from dataclasses import dataclass, field

from courtlist_publisher.clients.content_store import artifact_reference
from courtlist_publisher.domain.contracts import ARTIFACT_CONTENT_TYPE, TokenProvider
from courtlist_publisher.domain.dto import CourtListQuery
from courtlist_publisher.domain.errors import ArtifactNotFound, AuthenticationFailed, HubRejected
from courtlist_publisher.domain.models import PublicationMetadata, StoredArtifact

STUB_PDF = b"%PDF-1.4\n% stub court list\n%%EOF\n"


@dataclass
class StubCourtListAssembler:
    calls: list[CourtListQuery] = field(default_factory=list)
    documents: dict[str, dict[str, object]] = field(default_factory=dict)
    error: Exception | None = None

    async def fetch(self, query: CourtListQuery) -> dict[str, object]:
        self.calls.append(query)
        if self.error is not None:
            raise self.error
        document = self.documents.get(query.court_centre_id)
        if document is not None:
            return dict(document)
        return {
            "listType": query.list_type,
            "courtCentreId": query.court_centre_id,
            "startDate": query.start_date.isoformat(),
            "endDate": query.end_date.isoformat(),
            "courtIdNumeric": "0",
            "isWelsh": False,
            "hearingDates": [],
        }


@dataclass
class StubRendererClient:
    """Returns `payload` verbatim, including an empty one."""

    payload: bytes = STUB_PDF
    calls: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    error: Exception | None = None

    async def render(self, *, template_name: str, payload: dict[str, object]) -> bytes:
        self.calls.append((template_name, payload))
        if self.error is not None:
            raise self.error
        return self.payload


@dataclass
class StubContentStore:
    base_url: str = "memory://court-lists"
    objects: dict[str, bytes] = field(default_factory=dict)
    content_types: dict[str, str] = field(default_factory=dict)
    writes: list[str] = field(default_factory=list)
    error: Exception | None = None

    async def store(
        self,
        *,
        folder: str,
        name: str,
        payload: bytes,
        content_type: str = ARTIFACT_CONTENT_TYPE,
    ) -> StoredArtifact:
        if self.error is not None:
            raise self.error
        reference = artifact_reference(folder, name)
        self.objects[reference] = payload
        self.content_types[reference] = content_type
        self.writes.append(reference)
        return StoredArtifact(reference=reference, url=f"{self.base_url}/{reference}", size=len(payload))

    async def fetch(self, *, reference: str) -> bytes:
        payload = self.objects.get(reference)
        if payload is None:
            raise ArtifactNotFound(reference)
        return payload

    async def list(self, *, folder: str) -> list[StoredArtifact]:
        prefix = folder.strip("/")
        if prefix:
            prefix = f"{prefix}/"
        return [
            StoredArtifact(reference=reference, url=f"{self.base_url}/{reference}", size=len(payload))
            for reference, payload in sorted(self.objects.items())
            if reference.startswith(prefix)
        ]


@dataclass
class StubTokenProvider:
    token: str = "stub-token"
    fail: bool = False
    calls: int = 0

    async def get_token(self) -> str:
        self.calls += 1
        if self.fail:
            raise AuthenticationFailed("stub credential flow is configured to fail")
        return self.token


@dataclass
class StubHubPublisher:
    token_provider: TokenProvider = field(default_factory=StubTokenProvider)
    status_code: int = 200
    body: str = ""
    calls: list[tuple[dict[str, object], PublicationMetadata]] = field(default_factory=list)
    error: Exception | None = None

    async def publish(self, *, document: dict[str, object], metadata: PublicationMetadata) -> int:
        await self.token_provider.get_token()
        self.calls.append((document, metadata))
        if self.error is not None:
            raise self.error
        if not 200 <= self.status_code < 300:
            raise HubRejected(self.status_code, self.body)
        return self.status_code
