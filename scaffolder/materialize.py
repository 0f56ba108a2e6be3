"""Copying cached templates into a target directory and rendering them in place."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence
import os
import re
import shutil
import tempfile

from .console import Console
from .errors import CacheWriteFailed, RenderFailed
from .template import TemplateError, TemplateResolver

DEFAULT_IGNORE: tuple[str, ...] = ("**/node_modules/**",)
"""Always excluded from rendering, whatever a template declares."""


GLOB_CACHE_SIZE = 256


@lru_cache(maxsize=GLOB_CACHE_SIZE)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a glob where only ``**`` crosses directory separators."""

    regex: List[str] = []
    index, size = 0, len(pattern)
    while index < size:
        char = pattern[index]
        if pattern.startswith("**/", index):
            regex.append("(?:.*/)?")
            index += 3
        elif pattern.startswith("**", index):
            regex.append(".*")
            index += 2
        elif char == "*":
            regex.append("[^/]*")
            index += 1
        elif char == "?":
            regex.append("[^/]")
            index += 1
        elif char == "[" and "]" in pattern[index + 2:]:
            end = pattern.index("]", index + 2)
            body = pattern[index + 1:end].replace("\\", "\\\\")
            if body[0] in "!^":
                body = "^" + body[1:]
            regex.append(f"[{body}]")
            index = end + 1
        else:
            regex.append(re.escape(char))
            index += 1
    return re.compile("".join(regex))


def _matches(path: str, pattern: str) -> bool:
    """Match a POSIX relative path; directories are passed with a trailing ``/``."""

    pattern = pattern.strip().removeprefix("./")
    if not pattern:
        return False
    is_dir = path.endswith("/")
    if pattern.endswith("/"):
        if not is_dir:
            return False
        pattern = pattern.rstrip("/")
    if "/" not in pattern:
        # Slash-free patterns match a file or directory name at any depth.
        return _compile_glob(pattern).fullmatch(path.rstrip("/").rsplit("/", 1)[-1]) is not None
    if _compile_glob(pattern).fullmatch(path.rstrip("/")) is not None:
        return True
    # A directory is pruned when everything below it is excluded.
    return is_dir and _compile_glob(pattern).fullmatch(path) is not None


def is_ignored(relative_path: str, patterns: Iterable[str]) -> bool:
    """Return True when the POSIX ``relative_path`` matches any glob in ``patterns``."""

    return any(_matches(relative_path, pattern) for pattern in patterns)


def effective_ignore(patterns: Iterable[str]) -> tuple[str, ...]:
    seen: Dict[str, None] = {}
    for pattern in (*DEFAULT_IGNORE, *patterns):
        seen.setdefault(pattern, None)
    return tuple(seen)


def ensure_directory(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise CacheWriteFailed(f"Unable to create directory '{path}': {exc}") from exc
    return path


def copy_template(source: Path, target: Path) -> None:
    """Recursively copy ``source`` into ``target``, overwriting existing files."""

    ensure_directory(source)
    ensure_directory(target)
    try:
        shutil.copytree(source, target, dirs_exist_ok=True)
    except (OSError, shutil.Error) as exc:
        raise CacheWriteFailed(f"Unable to copy template from '{source}' to '{target}': {exc}") from exc


def collect_render_targets(root: Path, ignore: Sequence[str]) -> List[Path]:
    """Return every file under ``root`` that is not excluded by ``ignore``."""

    patterns = effective_ignore(ignore)
    targets: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        relative_dir = current.relative_to(root).as_posix()
        prefix = "" if relative_dir == "." else f"{relative_dir}/"
        # Prune directories whose whole subtree is excluded.
        dirnames[:] = sorted(name for name in dirnames if not is_ignored(f"{prefix}{name}/", patterns))
        for filename in sorted(filenames):
            if not is_ignored(f"{prefix}{filename}", patterns):
                targets.append(current / filename)
    return targets


def _render_file(path: Path, context: Mapping[str, Any]) -> str | None:
    raw = path.read_bytes()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return None
    rendered = TemplateResolver(context).render(text)
    return rendered if rendered != text else None


def _replace_file(path: Path, text: str) -> None:
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(text.encode("utf-8"))
        shutil.copymode(path, temp_path)
        os.replace(temp_path, path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def render_tree(
    root: Path,
    context: Mapping[str, Any],
    *,
    ignore: Sequence[str] = (),
    max_workers: int | None = None,
    console: Console | None = None,
) -> List[Path]:
    """Render every non-ignored file under ``root`` with ``context``.

    All files are rendered concurrently into memory first. Nothing is written
    unless every file rendered; a failure raises :class:`RenderFailed` with
    the target tree unchanged. Files that are not UTF-8 text are skipped.
    Returns the files whose content changed.
    """

    console = console or Console("none")
    files = collect_render_targets(root, ignore)
    console.debug(f"rendering {len(files)} file(s) under {root}")

    rendered: Dict[Path, str] = {}
    failures: Dict[str, str] = {}
    if files:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(_render_file, path, context): path for path in files}
            for future in as_completed(futures):
                path = futures[future]
                relative = path.relative_to(root).as_posix()
                try:
                    result = future.result()
                except (TemplateError, OSError) as exc:
                    failures[relative] = str(exc)
                    continue
                if result is None:
                    continue
                rendered[path] = result

    if failures:
        details = "; ".join(f"{name}: {reason}" for name, reason in sorted(failures.items()))
        raise RenderFailed(f"Failed to render {len(failures)} file(s): {details}", failures=failures)

    written: List[Path] = []
    for path in sorted(rendered):
        try:
            _replace_file(path, rendered[path])
        except OSError as exc:
            raise RenderFailed(
                f"Failed to write rendered file '{path}': {exc}",
                failures={path.relative_to(root).as_posix(): str(exc)},
            ) from exc
        written.append(path)
    console.debug(f"rendered {len(written)} file(s)")
    return written


__all__ = [
    "DEFAULT_IGNORE",
    "collect_render_targets",
    "copy_template",
    "effective_ignore",
    "ensure_directory",
    "is_ignored",
    "render_tree",
]
