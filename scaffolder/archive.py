"""Unpacking of downloaded template artifacts."""
from __future__ import annotations

from pathlib import Path, PurePosixPath
import tarfile
import tempfile

import zstandard as zstd

_SUFFIX_FORMATS: list[tuple[str, str]] = [
    (".tar.zst", "zst"),
    (".tzst", "zst"),
    (".tar.gz", "gztar"),
    (".tgz", "gztar"),
    (".tar", "tar"),
]

_GZIP_MAGIC = b"\x1f\x8b"
_ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"


class ArchiveError(ValueError):
    """Raised when an artifact cannot be unpacked."""


def detect_format(archive: Path) -> str:
    filename = archive.name.lower()
    for suffix, fmt in sorted(_SUFFIX_FORMATS, key=lambda item: len(item[0]), reverse=True):
        if filename.endswith(suffix):
            return fmt
    with archive.open("rb") as handle:
        head = handle.read(4)
    if head.startswith(_GZIP_MAGIC):
        return "gztar"
    if head.startswith(_ZSTD_MAGIC):
        return "zst"
    return "tar"


def _strip_member_name(name: str, strip_prefix: bool) -> str | None:
    path = PurePosixPath(name)
    parts = [part for part in path.parts if part not in ("", ".")]
    if path.is_absolute() or ".." in parts:
        raise ArchiveError(f"Refusing to extract unsafe archive member '{name}'")
    if strip_prefix and parts:
        parts = parts[1:]
    if not parts:
        return None
    return "/".join(parts)


def _has_single_root(tar: tarfile.TarFile) -> bool:
    member_parts = [PurePosixPath(member.name).parts for member in tar.getmembers()]
    member_parts = [parts for parts in member_parts if parts]
    roots = {parts[0] for parts in member_parts}
    return len(roots) == 1 and any(len(parts) > 1 for parts in member_parts)


def _extract_tar(tar: tarfile.TarFile, destination: Path) -> int:
    strip_prefix = _has_single_root(tar)
    count = 0
    for member in tar.getmembers():
        if not (member.isfile() or member.isdir()):
            # Links and devices are never part of a template payload.
            continue
        stripped = _strip_member_name(member.name, strip_prefix)
        if stripped is None:
            continue
        member.name = stripped
        tar.extract(member, path=destination, filter="data")
        count += 1
    return count


def extract_archive(archive_path: Path | str, destination_dir: Path | str) -> int:
    """Extract a package tarball into ``destination_dir``.

    A single top-level directory (``package/`` for npm tarballs) is stripped.
    Returns the number of extracted entries.
    """

    archive = Path(archive_path).expanduser()
    dest = Path(destination_dir).expanduser()
    if not archive.exists():
        raise FileNotFoundError(f"Archive '{archive}' does not exist")

    dest.mkdir(parents=True, exist_ok=True)
    archive_format = detect_format(archive)
    try:
        return _extract(archive, dest, archive_format)
    except (tarfile.TarError, zstd.ZstdError, EOFError) as exc:
        raise ArchiveError(f"Unable to unpack '{archive}': {exc}") from exc


def _extract(archive: Path, dest: Path, archive_format: str) -> int:
    if archive_format == "zst":
        with tempfile.NamedTemporaryFile(dir=dest.parent, suffix=".tar", delete=False) as temp_handle:
            temp_tar = Path(temp_handle.name)
        try:
            dctx = zstd.ZstdDecompressor()
            with archive.open("rb") as src, temp_tar.open("wb") as dst:
                dctx.copy_stream(src, dst)
            with tarfile.open(temp_tar, "r:") as tar:
                return _extract_tar(tar, dest)
        finally:
            temp_tar.unlink(missing_ok=True)

    mode = "r:gz" if archive_format == "gztar" else "r:"
    with tarfile.open(archive, mode) as tar:
        return _extract_tar(tar, dest)


__all__ = ["ArchiveError", "detect_format", "extract_archive"]
