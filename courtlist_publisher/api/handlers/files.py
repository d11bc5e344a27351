from __future__ import annotations

from courtlist_publisher.api.handlers.deps import ApiDeps
from courtlist_publisher.api.schemas import StoredFileListResponse, StoredFileResponse


async def list_files_handler(*, folder: str | None, api_deps: ApiDeps) -> StoredFileListResponse:
    target = folder if folder is not None else api_deps.artifact_folder
    artifacts = await api_deps.content_store.list(folder=target)
    return StoredFileListResponse(
        folder=target,
        items=[StoredFileResponse.from_artifact(artifact) for artifact in artifacts],
    )


async def download_file_handler(*, reference: str, api_deps: ApiDeps) -> bytes:
    return await api_deps.content_store.fetch(reference=reference)
