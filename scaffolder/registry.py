"""Client for npm-compatible package registries."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping
import urllib.parse

from packaging.version import InvalidVersion, Version

from .errors import RegistryUnreachable
from .net import HttpError, download, get_json

DEFAULT_REGISTRY = "https://registry.npmjs.org"
LATEST = "latest"


@dataclass(frozen=True, slots=True)
class PackageRelease:
    name: str
    version: str
    tarball: str


def _version_key(raw: str) -> Version | None:
    try:
        return Version(raw)
    except InvalidVersion:
        return None


def newest_version(versions: Iterable[str]) -> str | None:
    """Return the highest parseable, non-prerelease version in ``versions``."""

    best: tuple[Version, str] | None = None
    for raw in versions:
        parsed = _version_key(raw)
        if parsed is None or parsed.is_prerelease:
            continue
        if best is None or parsed > best[0]:
            best = (parsed, raw)
    return best[1] if best else None


class RegistryClient:
    """Reads package metadata ("packuments") and downloads release tarballs."""

    def __init__(self, registry: str = DEFAULT_REGISTRY, *, timeout: float = 30.0) -> None:
        self.registry = registry.rstrip("/")
        self.timeout = timeout

    def package_url(self, name: str) -> str:
        # Scoped names keep their leading '@' but the slash must be escaped.
        return f"{self.registry}/{urllib.parse.quote(name, safe='@')}"

    def metadata(self, name: str) -> Mapping[str, Any]:
        url = self.package_url(name)
        try:
            data = get_json(url, timeout=self.timeout)
        except HttpError as exc:
            raise RegistryUnreachable(f"Unable to query registry for '{name}': {exc}") from exc
        if not isinstance(data, Mapping):
            raise RegistryUnreachable(f"Registry returned malformed metadata for '{name}'")
        return data

    def latest_version(self, name: str) -> str:
        data = self.metadata(name)
        tags = data.get("dist-tags")
        if isinstance(tags, Mapping) and isinstance(tags.get(LATEST), str):
            return str(tags[LATEST])
        versions = data.get("versions")
        candidate = newest_version(versions.keys()) if isinstance(versions, Mapping) else None
        if candidate is None:
            raise RegistryUnreachable(f"Registry lists no published versions for '{name}'")
        return candidate

    def release(self, name: str, version: str) -> PackageRelease:
        data = self.metadata(name)
        if version == LATEST:
            tags = data.get("dist-tags")
            if isinstance(tags, Mapping) and isinstance(tags.get(LATEST), str):
                version = str(tags[LATEST])
        versions = data.get("versions")
        manifest = versions.get(version) if isinstance(versions, Mapping) else None
        if not isinstance(manifest, Mapping):
            raise RegistryUnreachable(f"Version '{version}' of '{name}' is not published")
        dist = manifest.get("dist")
        tarball = dist.get("tarball") if isinstance(dist, Mapping) else None
        if not tarball:
            raise RegistryUnreachable(f"No tarball listed for '{name}@{version}'")
        return PackageRelease(name=name, version=version, tarball=str(tarball))

    def download(self, release: PackageRelease, destination: Path) -> Path:
        try:
            return download(release.tarball, destination, timeout=self.timeout)
        except HttpError as exc:
            raise RegistryUnreachable(
                f"Unable to download '{release.name}@{release.version}': {exc}"
            ) from exc


__all__ = ["DEFAULT_REGISTRY", "LATEST", "PackageRelease", "RegistryClient", "newest_version"]
