"""Project information collected from the user and the render context built from it."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping
import re
import shutil

from .catalog import TYPE_COMPONENT, TYPE_PROJECT
from .errors import CacheWriteFailed, ProjectInfoError

RenderContext = Mapping[str, str]

# Optional npm scope, then words joined by '-' or '_' that each start with a letter.
_NAME_PATTERN = re.compile(
    r"^(@[a-zA-Z0-9_-]+/)?[a-zA-Z][a-zA-Z0-9]*([-_][a-zA-Z][a-zA-Z0-9]*)*$"
)
_SEMVER_PATTERN = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

_CAPITALS = re.compile("[A-Z\u00c0-\u00d6\u00d8-\u00de]")

IGNORED_ENTRIES = frozenset({"node_modules"})


def is_valid_name(value: str) -> bool:
    return bool(value) and _NAME_PATTERN.match(value) is not None


def normalize_version(value: str) -> str:
    """Validate a semantic version and return it without a leading ``v``."""

    text = (value or "").strip()
    if not _SEMVER_PATTERN.match(text):
        raise ProjectInfoError(f"Invalid version '{value}': expected MAJOR.MINOR.PATCH")
    return text.removeprefix("v")


def kebab_case(value: str) -> str:
    """Prefix every capital with ``-`` and lower it, minus one leading ``-``.

    ``MyWidget`` -> ``my-widget``, ``ABC`` -> ``a-b-c``; underscores and npm
    scopes are kept as they are.
    """

    return _CAPITALS.sub(lambda match: "-" + match.group(0).lower(), value).removeprefix("-")


@dataclass(frozen=True, slots=True)
class ProjectInfo:
    project_name: str
    version: str
    template: str
    kind: str = TYPE_PROJECT
    description: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in (TYPE_PROJECT, TYPE_COMPONENT):
            raise ProjectInfoError(f"Unknown initialization type '{self.kind}'")
        if not is_valid_name(self.project_name):
            raise ProjectInfoError(f"Invalid {self.kind} name '{self.project_name}'")
        if self.kind == TYPE_COMPONENT and not (self.description or "").strip():
            raise ProjectInfoError("A component requires a description")

    def render_context(self) -> RenderContext:
        version = normalize_version(self.version)
        context = {
            "type": self.kind,
            "projectName": self.project_name,
            "name": self.project_name,
            "className": kebab_case(self.project_name),
            "projectVersion": version,
            "version": version,
            "projectTemplate": self.template,
        }
        if self.description:
            context["componentDescription"] = self.description
            context["description"] = self.description
        return MappingProxyType(context)


def is_dir_empty(path: Path) -> bool:
    """True when ``path`` holds nothing but dotfiles and dependency directories."""

    if not path.exists():
        return True
    for child in path.iterdir():
        if child.name.startswith(".") or child.name in IGNORED_ENTRIES:
            continue
        return False
    return True


def empty_directory(path: Path) -> None:
    """Remove everything inside ``path`` while keeping the directory itself."""

    try:
        for child in path.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
    except OSError as exc:
        raise CacheWriteFailed(f"Unable to empty directory '{path}': {exc}") from exc


__all__ = [
    "ProjectInfo",
    "RenderContext",
    "empty_directory",
    "is_dir_empty",
    "is_valid_name",
    "kebab_case",
    "normalize_version",
]
