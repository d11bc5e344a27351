from __future__ import annotations

from dataclasses import dataclass

SUPPORTED_ROLES = (
    "api",
    "api-query",
)

PUBLISHING_ROLES = frozenset({"api"})


@dataclass(frozen=True)
class RuntimeRole:
    name: str

    @property
    def accepts_publish_requests(self) -> bool:
        return self.name in PUBLISHING_ROLES


def validate_role(role: str) -> RuntimeRole:
    if role in SUPPORTED_ROLES:
        return RuntimeRole(name=role)

    supported = ", ".join(SUPPORTED_ROLES)
    raise ValueError(
        f"Unsupported role '{role}'. Supported roles: {supported}. "
        "Note: database migrations are applied externally and are not an app role."
    )
