from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

DEFAULT_CATALOGUE_PATH = Path(__file__).resolve().parents[1] / "config" / "list_types.v1.yaml"


@dataclass(frozen=True)
class ListTypeSpec:
    name: str
    template: str
    welsh_template: str | None
    hub_list_type: str


@dataclass(frozen=True)
class ListTypeCatalogue:
    catalogue_version: str
    default_template: str
    list_types: dict[str, ListTypeSpec]

    def resolve(self, court_list_type: str) -> ListTypeSpec:
        key = court_list_type.strip().upper()
        spec = self.list_types.get(key)
        if spec is not None:
            return spec
        # Unknown list types still publish: default template, type name as hub list type.
        return ListTypeSpec(
            name=key,
            template=self.default_template,
            welsh_template=None,
            hub_list_type=key,
        )

    def template_for(self, court_list_type: str, *, welsh: bool = False) -> str:
        spec = self.resolve(court_list_type)
        if welsh and spec.welsh_template:
            return spec.welsh_template
        return spec.template


def load_list_type_catalogue(*, file_path: str | Path = DEFAULT_CATALOGUE_PATH) -> ListTypeCatalogue:
    data = yaml.safe_load(Path(file_path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("list type catalogue must be a YAML object")
    return parse_list_type_catalogue(data)


def parse_list_type_catalogue(data: dict[str, object]) -> ListTypeCatalogue:
    catalogue_version = _required_str(data, "catalogue_version")
    default_raw = _required_obj(data, "default")
    default_template = _required_str(default_raw, "template")

    list_types_raw = _required_obj(data, "list_types")
    if not list_types_raw:
        raise ValueError("list_types must contain at least one list type")

    list_types: dict[str, ListTypeSpec] = {}
    for name, item in list_types_raw.items():
        if not isinstance(item, dict):
            raise ValueError(f"list_types.{name} must be object")
        key = str(name).strip().upper()
        list_types[key] = ListTypeSpec(
            name=key,
            template=_required_str(item, "template"),
            welsh_template=_optional_str(item, "welsh_template"),
            hub_list_type=_required_str(item, "hub_list_type"),
        )

    return ListTypeCatalogue(
        catalogue_version=catalogue_version,
        default_template=default_template,
        list_types=list_types,
    )


def _required_str(data: dict[str, object], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{key} is required and must be non-empty string")
    return value


def _optional_str(data: dict[str, object], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        raise ValueError(f"{key} must be non-empty string or null")
    return value


def _required_obj(data: dict[str, object], key: str) -> dict[str, object]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ValueError(f"{key} is required and must be object")
    return value
