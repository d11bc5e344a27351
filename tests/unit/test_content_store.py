from __future__ import annotations

import asyncio
import base64
from dataclasses import dataclass, field

from azure.core.exceptions import HttpResponseError, ResourceNotFoundError
import pytest

from courtlist_publisher.clients.content_store import AzureBlobContentStore, artifact_reference, operation_timeout_for
from courtlist_publisher.clients.stub import StubContentStore
from courtlist_publisher.domain.errors import ArtifactNotFound, StorageFailed

ACCOUNT_KEY = base64.b64encode(b"k" * 32).decode("ascii")


@dataclass
class _Download:
    payload: bytes

    def readall(self) -> bytes:
        return self.payload


@dataclass
class _BlobProperties:
    name: str
    size: int


@dataclass
class _FakeBlobClient:
    service: _FakeServiceClient
    container: str
    blob: str

    @property
    def url(self) -> str:
        return f"https://{self.service.account_name}.blob.core.windows.net/{self.container}/{self.blob}"

    def upload_blob(self, data: bytes, *, overwrite: bool, content_settings: object, **kwargs: object) -> None:
        self.service.sdk_kwargs.append(("upload_blob", kwargs))
        if self.service.fail_uploads:
            raise HttpResponseError(message="service unavailable")
        self.service.uploads.append((self.blob, overwrite, getattr(content_settings, "content_type", None)))
        self.service.blobs[self.blob] = data

    def download_blob(self, **kwargs: object) -> _Download:
        self.service.sdk_kwargs.append(("download_blob", kwargs))
        payload = self.service.blobs.get(self.blob)
        if payload is None:
            raise ResourceNotFoundError(message="blob not found")
        return _Download(payload)


@dataclass
class _FakeContainerClient:
    service: _FakeServiceClient
    container: str

    @property
    def url(self) -> str:
        return f"https://{self.service.account_name}.blob.core.windows.net/{self.container}"

    def list_blobs(self, *, name_starts_with: str, **kwargs: object) -> list[_BlobProperties]:
        self.service.sdk_kwargs.append(("list_blobs", kwargs))
        return [
            _BlobProperties(name=name, size=len(payload))
            for name, payload in sorted(self.service.blobs.items())
            if name.startswith(name_starts_with)
        ]


@dataclass
class _FakeServiceClient:
    account_name: str = "courtlists"
    fail_uploads: bool = False
    blobs: dict[str, bytes] = field(default_factory=dict)
    uploads: list[tuple[str, bool, str | None]] = field(default_factory=list)
    sdk_kwargs: list[tuple[str, dict[str, object]]] = field(default_factory=list)

    def get_blob_client(self, *, container: str, blob: str) -> _FakeBlobClient:
        return _FakeBlobClient(service=self, container=container, blob=blob)

    def get_container_client(self, container: str) -> _FakeContainerClient:
        return _FakeContainerClient(service=self, container=container)


@pytest.mark.unit
def test_artifact_reference_joins_folder_and_name() -> None:
    assert artifact_reference("court-lists/", "/L1.pdf") == "court-lists/L1.pdf"
    assert artifact_reference("", "L1.pdf") == "L1.pdf"
    with pytest.raises(ValueError):
        artifact_reference("court-lists", "")


@pytest.mark.unit
def test_blob_store_overwrites_and_returns_plain_url_without_key() -> None:
    service = _FakeServiceClient()
    store = AzureBlobContentStore(service_client=service, container="court-lists")

    async def _run() -> None:
        await store.store(folder="public", name="L1.pdf", payload=b"first")
        stored = await store.store(folder="public", name="L1.pdf", payload=b"second")

        assert stored.reference == "public/L1.pdf"
        assert stored.url == "https://courtlists.blob.core.windows.net/court-lists/public/L1.pdf"
        assert stored.size == 6
        assert await store.fetch(reference="public/L1.pdf") == b"second"

    asyncio.run(_run())
    assert service.uploads == [
        ("public/L1.pdf", True, "application/pdf"),
        ("public/L1.pdf", True, "application/pdf"),
    ]


@pytest.mark.unit
def test_blob_store_signs_read_only_urls_with_account_key() -> None:
    store = AzureBlobContentStore(
        service_client=_FakeServiceClient(),
        container="court-lists",
        account_key=ACCOUNT_KEY,
        sas_expiry_minutes=30,
    )

    stored = asyncio.run(store.store(folder="public", name="L1.pdf", payload=b"%PDF"))

    base, _, query = stored.url.partition("?")
    assert base == "https://courtlists.blob.core.windows.net/court-lists/public/L1.pdf"
    assert "sp=r" in query
    assert "sig=" in query


@pytest.mark.unit
def test_blob_store_lists_by_folder_prefix() -> None:
    service = _FakeServiceClient(blobs={"public/L1.pdf": b"1", "public/L2.pdf": b"22", "other/L3.pdf": b"333"})
    store = AzureBlobContentStore(service_client=service, container="court-lists")

    items = asyncio.run(store.list(folder="public"))

    assert [item.reference for item in items] == ["public/L1.pdf", "public/L2.pdf"]
    assert [item.name for item in items] == ["L1.pdf", "L2.pdf"]
    assert items[1].size == 2


@pytest.mark.unit
def test_blob_store_bounds_every_sdk_call() -> None:
    service = _FakeServiceClient()
    store = AzureBlobContentStore(
        service_client=service,
        container="court-lists",
        operation_timeout_seconds=operation_timeout_for(60),
    )

    async def _run() -> None:
        await store.store(folder="public", name="L1.pdf", payload=b"%PDF")
        await store.fetch(reference="public/L1.pdf")
        await store.list(folder="public")

    asyncio.run(_run())

    assert service.sdk_kwargs == [
        ("upload_blob", {"timeout": 59}),
        ("download_blob", {"timeout": 59}),
        ("list_blobs", {"timeout": 59}),
    ]
    assert operation_timeout_for(0.5) == 1
    assert operation_timeout_for(2.5) == 2


@pytest.mark.unit
def test_blob_store_without_timeout_passes_no_sdk_options() -> None:
    service = _FakeServiceClient()
    store = AzureBlobContentStore(service_client=service, container="court-lists")

    asyncio.run(store.store(folder="public", name="L1.pdf", payload=b"%PDF"))

    assert service.sdk_kwargs == [("upload_blob", {})]


@pytest.mark.unit
def test_blob_store_maps_sdk_errors() -> None:
    store = AzureBlobContentStore(service_client=_FakeServiceClient(fail_uploads=True), container="court-lists")

    with pytest.raises(StorageFailed):
        asyncio.run(store.store(folder="public", name="L1.pdf", payload=b"%PDF"))
    with pytest.raises(ArtifactNotFound):
        asyncio.run(store.fetch(reference="public/missing.pdf"))


@pytest.mark.unit
def test_stub_store_round_trip_and_listing() -> None:
    store = StubContentStore()

    async def _run() -> None:
        stored = await store.store(folder="court-lists", name="L1.pdf", payload=b"%PDF")
        assert stored.url == "memory://court-lists/court-lists/L1.pdf"
        assert await store.fetch(reference=stored.reference) == b"%PDF"
        assert [item.reference for item in await store.list(folder="court-lists")] == ["court-lists/L1.pdf"]
        assert await store.list(folder="elsewhere") == []
        with pytest.raises(ArtifactNotFound):
            await store.fetch(reference="court-lists/missing.pdf")

    asyncio.run(_run())
