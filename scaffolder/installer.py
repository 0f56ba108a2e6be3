"""Template download and installation strategies."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence
import json
import os
import sys
import tempfile

from .cache import ArtifactCache, CacheEntry
from .catalog import CatalogEntry, TemplateStrategy
from .command_runner import CommandError, CommandRunner, SubprocessCommandRunner
from .console import Console
from .errors import CommandFailed, CustomInstallerMissing, NoTemplateSelected, UnknownStrategy
from .guard import CommandGuard
from .materialize import copy_template, ensure_directory, render_tree
from .project import RenderContext

INSTALL_FAILED_MESSAGE = "dependency installation failed"
START_FAILED_MESSAGE = "start command failed"
CUSTOM_FAILED_MESSAGE = "custom template installation failed"

_INTERPRETERS: Mapping[str, Sequence[str]] = {
    ".js": ("node",),
    ".cjs": ("node",),
    ".mjs": ("node",),
    ".py": (sys.executable,),
}


@dataclass(frozen=True, slots=True)
class InstallRequest:
    """Everything one installation needs; built once per run."""

    entry: CatalogEntry | None
    artifact: CacheEntry
    context: RenderContext
    target_dir: Path


def require_entry(request: InstallRequest) -> CatalogEntry:
    if request.entry is None:
        raise NoTemplateSelected("No template information was resolved")
    return request.entry


def prepare_template(
    cache: ArtifactCache,
    entry: CatalogEntry,
    *,
    store_root: Path | None,
    target_path: Path | None = None,
    console: Console | None = None,
) -> CacheEntry:
    """Make the artifact for ``entry`` available locally and return its cache entry.

    A cache miss downloads the requested version; a hit upgrades to the
    newest published version.
    """

    console = console or Console("none")
    artifact = cache.entry_for(entry.name, entry.version, store_root=store_root, target_path=target_path)
    if not cache.exists(artifact):
        console.info(f"Downloading template {artifact}...")
        artifact = cache.fetch(artifact)
        console.success(f"Downloaded template {artifact}")
    else:
        console.info(f"Updating template {artifact}...")
        artifact = cache.update(artifact)
        console.success(f"Template is up to date ({artifact})")
    return artifact


class NormalStrategy:
    """Copy the cached template, render it, then run its declared commands."""

    def __init__(
        self,
        guard: CommandGuard,
        *,
        console: Console | None = None,
        max_workers: int | None = None,
    ) -> None:
        self._guard = guard
        self._console = console or Console("none")
        self._max_workers = max_workers

    def install(self, request: InstallRequest) -> None:
        entry = require_entry(request)
        source = request.artifact.template_dir
        target = request.target_dir

        self._console.info(f"Installing template {entry.display_name}...")
        copy_template(source, target)
        self._console.success("Template files copied")

        rendered = render_tree(
            target,
            request.context,
            ignore=entry.ignore,
            max_workers=self._max_workers,
            console=self._console,
        )
        self._console.debug(f"rendered: {', '.join(str(path.relative_to(target)) for path in rendered) or '<none>'}")

        if entry.install_command:
            self._console.info(f"Running {entry.install_command}")
            self._guard.run(entry.install_command, cwd=target, error_message=INSTALL_FAILED_MESSAGE)
        if entry.start_command:
            self._console.info(f"Running {entry.start_command}")
            self._guard.run(entry.start_command, cwd=target, error_message=START_FAILED_MESSAGE)


def installer_command(installer: Path, options_file: Path) -> list[str]:
    interpreter = _INTERPRETERS.get(installer.suffix.lower(), ())
    return [*interpreter, str(installer), str(options_file)]


def installer_options(request: InstallRequest) -> dict:
    return {
        "templateInfo": require_entry(request).to_mapping(),
        "projectInfo": dict(request.context),
        "sourcePath": str(request.artifact.template_dir),
        "targetPath": str(request.target_dir),
    }


class CustomStrategy:
    """Delegate materialization to the template's own installer in a subprocess.

    The installer receives the path of a JSON options file as its only
    argument and inherits the standard streams. Only its exit status is
    observed.
    """

    def __init__(
        self,
        cache: ArtifactCache,
        runner: CommandRunner | None = None,
        *,
        console: Console | None = None,
    ) -> None:
        self._cache = cache
        self._runner = runner or SubprocessCommandRunner()
        self._console = console or Console("none")

    def locate_installer(self, artifact: CacheEntry) -> Path:
        if not self._cache.exists(artifact):
            raise CustomInstallerMissing(f"Template {artifact} is not available locally")
        installer = self._cache.root_installer_path(artifact)
        if installer is None or not installer.is_file():
            raise CustomInstallerMissing(f"Custom template entry file does not exist for {artifact}")
        return installer

    def install(self, request: InstallRequest) -> None:
        installer = self.locate_installer(request.artifact)
        ensure_directory(request.target_dir)
        self._console.notice(f"Running custom template installer {installer}")

        fd, options_name = tempfile.mkstemp(prefix="scaffolder-options-", suffix=".json")
        options_file = Path(options_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(installer_options(request), handle)
            command = installer_command(installer, options_file)
            try:
                self._runner.run(command, cwd=request.target_dir, check=True, stream=True, note="custom installer")
            except CommandError as exc:
                raise CommandFailed(CUSTOM_FAILED_MESSAGE, returncode=exc.result.returncode) from exc
        finally:
            options_file.unlink(missing_ok=True)
        self._console.success("Custom template installed")


class Installer:
    """Validates a request and dispatches it to the declared strategy."""

    def __init__(self, *, normal: NormalStrategy, custom: CustomStrategy) -> None:
        self._strategies = {
            TemplateStrategy.NORMAL: normal,
            TemplateStrategy.CUSTOM: custom,
        }

    def install(self, request: InstallRequest) -> None:
        strategy = require_entry(request).strategy
        handler = self._strategies.get(strategy) if isinstance(strategy, TemplateStrategy) else None
        if handler is None:
            raise UnknownStrategy(f"Unrecognized template type: {strategy!r}")
        handler.install(request)


def build_installer(
    cache: ArtifactCache,
    runner: CommandRunner | None = None,
    *,
    console: Console | None = None,
    max_workers: int | None = None,
) -> Installer:
    runner = runner or SubprocessCommandRunner()
    guard = CommandGuard(runner, console=console)
    return Installer(
        normal=NormalStrategy(guard, console=console, max_workers=max_workers),
        custom=CustomStrategy(cache, runner, console=console),
    )


__all__ = [
    "CUSTOM_FAILED_MESSAGE",
    "CustomStrategy",
    "INSTALL_FAILED_MESSAGE",
    "InstallRequest",
    "Installer",
    "NormalStrategy",
    "START_FAILED_MESSAGE",
    "build_installer",
    "installer_command",
    "installer_options",
    "prepare_template",
    "require_entry",
]
