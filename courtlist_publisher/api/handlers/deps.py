from __future__ import annotations

from dataclasses import dataclass

from courtlist_publisher.domain.contracts import ContentStore, PublishDispatcher, StatusRepository


@dataclass(frozen=True)
class ApiDeps:
    repository: StatusRepository
    content_store: ContentStore
    dispatcher: PublishDispatcher
    artifact_folder: str = "court-lists"
