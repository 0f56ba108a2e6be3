"""Decoding of TOML, JSON and YAML documents (settings files and template catalogs)."""
from __future__ import annotations

from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, List, Mapping, Sequence

import json
import tomllib

import yaml


DocumentLoader = Callable[[BinaryIO], Any]

FILE_LOADERS: Dict[str, DocumentLoader] = {
    ".toml": tomllib.load,
    ".json": json.load,
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
}
"""Suffix -> loader. Every loader reads from a binary stream."""


def load_document(path: Path) -> Any:
    """Decode ``path`` with the loader registered for its suffix.

    Raises ``ValueError`` for unknown suffixes and lets decoder errors
    (``tomllib.TOMLDecodeError``, ``json.JSONDecodeError``, ``yaml.YAMLError``)
    propagate.
    """

    loader = FILE_LOADERS.get(path.suffix.lower())
    if loader is None:
        raise ValueError(
            f"Cannot read '{path.name}': expected one of {', '.join(sorted(FILE_LOADERS))}"
        )
    with path.open("rb") as stream:
        return loader(stream)


def load_config_file(path: Path) -> Mapping[str, Any]:
    """Like :func:`load_document`, but the root must be a table; empty files give ``{}``."""

    data = load_document(path)
    if data is None:
        return {}
    if isinstance(data, Mapping):
        return data
    raise TypeError(f"Configuration file '{path}' must contain a mapping at the root")


def find_config_file(directory: Path, stem: str) -> Path | None:
    """Return ``directory/<stem>.<ext>`` for the one supported ``ext`` present.

    Two formats of the same file are ambiguous and rejected.
    """

    if not directory.is_dir():
        return None
    candidates = [directory / f"{stem}{suffix}" for suffix in FILE_LOADERS]
    present = [path for path in candidates if path.is_file()]
    if len(present) > 1:
        raise ValueError(
            f"Found {' and '.join(repr(path.name) for path in present)} in '{directory}'; keep only one"
        )
    return present[0] if present else None


def normalize_string_list(value: Any, *, field_name: str = "value") -> List[str]:
    """Accept one string or a list of strings; blanks are dropped, the rest stripped."""

    if value is None:
        return []
    if isinstance(value, str):
        items: Sequence[Any] = [value]
    elif isinstance(value, Sequence):
        items = value
    else:
        raise TypeError(f"{field_name} must be a string or a list of strings")

    result: List[str] = []
    for item in items:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} entries must be strings, got {item!r}")
        if item.strip():
            result.append(item.strip())
    return result


__all__ = [
    "DocumentLoader",
    "FILE_LOADERS",
    "find_config_file",
    "load_config_file",
    "load_document",
    "normalize_string_list",
]
