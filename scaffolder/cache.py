"""Version-addressed local cache of template artifacts."""
from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
import json
import tempfile

from .archive import ArchiveError, extract_archive
from .console import Console
from .errors import CacheWriteFailed
from .registry import LATEST, RegistryClient

TEMPLATE_SUBDIR = "template"
MANIFEST_NAME = "package.json"


def sanitize_name(name: str) -> str:
    """Replace path separators so scoped names map to a single directory."""

    return name.replace("/", "_").replace("\\", "_")


def cache_slot_path(store_root: Path, name: str, version: str) -> Path:
    """Return the cache slot directory for ``name@version`` under ``store_root``.

    The trailing raw ``name`` keeps scoped and unscoped packages whose
    sanitized prefixes collide in separate slots.
    """

    if version == LATEST:
        raise ValueError("Cache slots are addressed by concrete versions, not 'latest'")
    return Path(store_root).resolve() / f"_{sanitize_name(name)}@{version}@{name}"


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A concrete artifact version inside a store, or a direct target path."""

    name: str
    version: str
    store_root: Path | None = None
    target_path: Path | None = None

    def __post_init__(self) -> None:
        if self.version == LATEST:
            raise ValueError(f"Resolve '{self.name}@latest' to a concrete version first")
        if self.store_root is None and self.target_path is None:
            raise ValueError("A cache entry needs either a store root or a target path")

    @property
    def path(self) -> Path:
        if self.store_root is not None:
            return cache_slot_path(self.store_root, self.name, self.version)
        if self.target_path is None:
            raise ValueError(f"{self} has neither a store root nor a target path")
        return Path(self.target_path).resolve()

    @property
    def template_dir(self) -> Path:
        return self.path / TEMPLATE_SUBDIR

    def with_version(self, version: str) -> "CacheEntry":
        return replace(self, version=version)

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


def _find_manifest_dir(start: Path) -> Path | None:
    for directory in (start, *start.parents):
        if (directory / MANIFEST_NAME).is_file():
            return directory
    return None


class ArtifactCache:
    """Resolves, fetches and updates template artifacts.

    The cache holds no per-run state: every operation takes a :class:`CacheEntry`
    and returns a new one where the version changes.
    """

    def __init__(self, registry: RegistryClient, *, console: Console | None = None) -> None:
        self._registry = registry
        self._console = console or Console("none")

    def resolve_version(self, name: str, requested: str | None) -> str:
        if not requested or requested == LATEST:
            version = self._registry.latest_version(name)
            self._console.debug(f"resolved {name}@latest to {version}")
            return version
        return requested

    def entry_for(
        self,
        name: str,
        requested: str | None,
        *,
        store_root: Path | None,
        target_path: Path | None = None,
    ) -> CacheEntry:
        version = self.resolve_version(name, requested)
        return CacheEntry(name=name, version=version, store_root=store_root, target_path=target_path)

    def cache_path(self, entry: CacheEntry) -> Path:
        return entry.path

    def exists(self, entry: CacheEntry) -> bool:
        return entry.path.exists()

    def fetch(self, entry: CacheEntry) -> CacheEntry:
        """Download ``entry`` into its slot.

        The payload is unpacked into a staging directory next to the slot and
        renamed into place, so an interrupted fetch never leaves a slot that
        :meth:`exists` would report.
        """

        slot = entry.path
        staging_root = Path(entry.store_root) if entry.store_root is not None else slot.parent
        try:
            staging_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheWriteFailed(f"Unable to create artifact store '{staging_root}': {exc}") from exc

        release = self._registry.release(entry.name, entry.version)
        self._console.debug(f"downloading {release.tarball}")
        try:
            with tempfile.TemporaryDirectory(dir=staging_root, prefix=".fetch-") as temp_dir:
                temp_path = Path(temp_dir)
                tarball = self._registry.download(release, temp_path / "artifact.tgz")
                staging = temp_path / "slot"
                extract_archive(tarball, staging)
                if slot.exists():
                    self._console.debug(f"{entry} already cached at {slot}")
                    return entry
                # Scoped names nest the slot one level below the store root.
                slot.parent.mkdir(parents=True, exist_ok=True)
                try:
                    staging.rename(slot)
                except OSError:
                    if not slot.exists():
                        raise
                    self._console.debug(f"{entry} was cached concurrently at {slot}")
        except ArchiveError as exc:
            raise CacheWriteFailed(f"Unable to unpack {entry}: {exc}") from exc
        except OSError as exc:
            raise CacheWriteFailed(f"Unable to write {entry} to '{slot}': {exc}") from exc
        self._console.debug(f"cached {entry} at {slot}")
        return entry

    def update(self, entry: CacheEntry) -> CacheEntry:
        """Return an entry for the newest published version, fetching it if needed.

        Slots of older versions are left in place.
        """

        latest = self._registry.latest_version(entry.name)
        updated = entry.with_version(latest)
        if not self.exists(updated):
            self.fetch(updated)
        elif latest != entry.version:
            self._console.debug(f"{updated} already cached")
        return updated

    def root_installer_path(self, entry: CacheEntry) -> Path | None:
        """Return the ``main`` file declared by the manifest nearest to the artifact root."""

        manifest_dir = _find_manifest_dir(entry.path)
        if manifest_dir is None:
            return None
        try:
            manifest = json.loads((manifest_dir / MANIFEST_NAME).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            self._console.warn(f"Unable to read {manifest_dir / MANIFEST_NAME}: {exc}")
            return None
        if not isinstance(manifest, dict):
            return None
        main = manifest.get("main")
        if not isinstance(main, str) or not main.strip():
            return None
        return (manifest_dir / main).resolve()


__all__ = [
    "ArtifactCache",
    "CacheEntry",
    "MANIFEST_NAME",
    "TEMPLATE_SUBDIR",
    "cache_slot_path",
    "sanitize_name",
]
