"""Template catalog entries and catalog loading."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Mapping, Sequence
import urllib.parse

import yaml

from .config_loader import load_document, normalize_string_list
from .errors import CatalogError
from .net import HttpError, get_json

TYPE_PROJECT = "project"
TYPE_COMPONENT = "component"


class TemplateStrategy(str, Enum):
    NORMAL = "normal"
    CUSTOM = "custom"


def _parse_strategy(value: Any) -> TemplateStrategy | str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return TemplateStrategy.NORMAL
    text = str(value).strip().lower()
    try:
        return TemplateStrategy(text)
    except ValueError:
        # Rejected later by the dispatcher.
        return text


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _unique(items: Sequence[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for item in items:
        seen.setdefault(item, None)
    return tuple(seen)


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """Metadata for one installable template."""

    name: str
    display_name: str
    version: str = "latest"
    strategy: TemplateStrategy | str = TemplateStrategy.NORMAL
    ignore: tuple[str, ...] = ()
    install_command: str | None = None
    start_command: str | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CatalogEntry":
        raw_name = data.get("npmName") or data.get("name")
        if not raw_name or not str(raw_name).strip():
            raise CatalogError("Catalog entries require a package name ('npmName' or 'name')")
        name = str(raw_name).strip()
        display_name = data.get("displayName")
        if not display_name:
            # Catalog APIs use 'name' for the label when 'npmName' carries the package.
            display_name = data.get("name") if data.get("npmName") else name
        version = str(data.get("version") or "latest").strip()
        try:
            ignore = normalize_string_list(data.get("ignore"), field_name="ignore")
            tags = normalize_string_list(data.get("tag", data.get("tags")), field_name="tag")
        except TypeError as exc:
            raise CatalogError(f"Invalid catalog entry '{name}': {exc}") from exc
        return cls(
            name=name,
            display_name=str(display_name),
            version=version,
            strategy=_parse_strategy(data.get("type")),
            ignore=_unique(ignore),
            install_command=_optional_text(data.get("installCommand")),
            start_command=_optional_text(data.get("startCommand")),
            tags=tuple(tag.lower() for tag in tags),
        )

    def to_mapping(self) -> dict[str, Any]:
        strategy = self.strategy.value if isinstance(self.strategy, TemplateStrategy) else self.strategy
        return {
            "npmName": self.name,
            "name": self.display_name,
            "version": self.version,
            "type": strategy,
            "ignore": list(self.ignore),
            "installCommand": self.install_command,
            "startCommand": self.start_command,
            "tag": list(self.tags),
        }

    def has_tag(self, tag: str) -> bool:
        # Untagged entries are offered for every kind of initialization.
        return not self.tags or tag.lower() in self.tags


JsonFetcher = Callable[[str], Any]


def _is_url(source: str) -> bool:
    return urllib.parse.urlparse(source).scheme in {"http", "https"}


def _extract_records(data: Any, source: str) -> List[Mapping[str, Any]]:
    if isinstance(data, Mapping):
        for key in ("templates", "data"):
            if key in data:
                data = data[key]
                break
        else:
            raise CatalogError(f"Catalog '{source}' must contain a 'templates' list")
    if not isinstance(data, Sequence) or isinstance(data, (str, bytes)):
        raise CatalogError(f"Catalog '{source}' must be a list of templates")
    records: List[Mapping[str, Any]] = []
    for item in data:
        if not isinstance(item, Mapping):
            raise CatalogError(f"Catalog '{source}' contains a non-mapping entry: {item!r}")
        records.append(item)
    return records


def parse_catalog(data: Any, *, source: str = "<memory>") -> List[CatalogEntry]:
    return [CatalogEntry.from_mapping(record) for record in _extract_records(data, source)]


def load_catalog(source: str | Path, *, fetch_json: JsonFetcher = get_json) -> List[CatalogEntry]:
    """Load catalog entries from a local file or an HTTP(S) endpoint."""

    text = str(source)
    if _is_url(text):
        try:
            data = fetch_json(text)
        except HttpError as exc:
            raise CatalogError(f"Unable to fetch template catalog: {exc}") from exc
        return parse_catalog(data, source=text)

    path = Path(text).expanduser()
    if not path.is_file():
        raise CatalogError(f"Template catalog not found: {path}")
    try:
        data = load_document(path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise CatalogError(f"Unable to read template catalog '{path}': {exc}") from exc
    return parse_catalog(data, source=str(path))


def filter_by_tag(entries: Sequence[CatalogEntry], tag: str) -> List[CatalogEntry]:
    return [entry for entry in entries if entry.has_tag(tag)]


def find_entry(entries: Sequence[CatalogEntry], name: str) -> CatalogEntry | None:
    for entry in entries:
        if entry.name == name:
            return entry
    for entry in entries:
        if entry.display_name == name:
            return entry
    return None


__all__ = [
    "CatalogEntry",
    "TYPE_COMPONENT",
    "TYPE_PROJECT",
    "TemplateStrategy",
    "filter_by_tag",
    "find_entry",
    "load_catalog",
    "parse_catalog",
]
