"""Command line interface for the scaffolder tool."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Iterable, List
import sys
import traceback

from . import __version__
from .cache import ArtifactCache, CacheEntry
from .catalog import TYPE_COMPONENT, TYPE_PROJECT, CatalogEntry, filter_by_tag, find_entry, load_catalog
from .command_runner import RecordingCommandRunner, SubprocessCommandRunner
from .console import Console
from .errors import CatalogError, NoTemplateSelected, ProjectInfoError, ScaffoldError
from .installer import InstallRequest, build_installer, prepare_template
from .project import ProjectInfo, empty_directory, is_dir_empty
from .registry import LATEST, RegistryClient
from .settings import Settings

LOCAL_VERSION = "local"


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="scaffolder", description="Create projects and components from published templates")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", choices=sorted(Console.LEVELS), help="Console verbosity (default: info)")
    parser.add_argument("-d", "--debug", action="store_true", help="Shortcut for --log-level debug")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Initialize a project or component in a directory")
    init_parser.add_argument("project_name", nargs="?", default="", help="Project or component name")
    init_parser.add_argument("-f", "--force", action="store_true", help="Initialize even if the target directory is not empty")
    init_parser.add_argument("-y", "--yes", action="store_true", help="Empty a non-empty target directory without asking")
    init_parser.add_argument("--type", dest="kind", choices=[TYPE_PROJECT, TYPE_COMPONENT], default=TYPE_PROJECT, help="What to initialize")
    init_parser.add_argument("--template", help="Template package name (or display name) from the catalog")
    init_parser.add_argument("--project-version", default="1.0.0", help="Initial version of the new project")
    init_parser.add_argument("--description", help="Component description (required for components)")
    init_parser.add_argument("--catalog", help="Template catalog file or URL")
    init_parser.add_argument("--registry", help="Package registry URL")
    init_parser.add_argument("--target-dir", help="Directory to initialize (default: current directory)")
    init_parser.add_argument("--target-path", help="Use a local template package directory instead of the cache")
    init_parser.add_argument("--dry-run", action="store_true", help="Print install/start commands instead of running them")

    return parser.parse_args(list(argv))


def _make_console(args: Namespace, settings: Settings) -> Console:
    level = "debug" if args.debug else (args.log_level or settings.log_level)
    return Console(level, dry_run=bool(getattr(args, "dry_run", False)))


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    console = Console("debug" if args.debug else (args.log_level or "info"))
    try:
        settings = Settings.load()
        console = _make_console(args, settings)
        if args.command == "init":
            return _handle_init(args, settings, console, workspace=Path.cwd())
        raise ValueError(f"Unknown command: {args.command}")
    except (ScaffoldError, ValueError, TypeError) as exc:
        console.error(str(exc))
        if console.enabled("debug"):
            traceback.print_exc()
        return 1


def _confirm(message: str) -> bool:
    try:
        answer = input(f"{message} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _prepare_target(target_dir: Path, *, force: bool, assume_yes: bool, console: Console) -> None:
    if is_dir_empty(target_dir):
        return
    if not force:
        raise ScaffoldError(f"Target directory '{target_dir}' is not empty (use --force to continue)")
    if assume_yes or _confirm(f"Empty all files in '{target_dir}'?"):
        console.warn(f"Emptying {target_dir}")
        empty_directory(target_dir)


def _select_template(entries: List[CatalogEntry], name: str | None, kind: str) -> CatalogEntry:
    candidates = filter_by_tag(entries, kind)
    if not candidates:
        raise CatalogError(f"No {kind} templates are available")
    if name:
        entry = find_entry(candidates, name)
        if entry is None:
            available = ", ".join(item.name for item in candidates)
            raise NoTemplateSelected(f"Template '{name}' not found. Available templates: {available}")
        return entry
    if len(candidates) == 1:
        return candidates[0]
    available = ", ".join(item.name for item in candidates)
    raise NoTemplateSelected(f"Choose a template with --template. Available templates: {available}")


def _local_artifact(entry: CatalogEntry, target_path: str) -> CacheEntry:
    path = Path(target_path).expanduser().resolve()
    if not path.is_dir():
        raise ScaffoldError(f"Local template path '{path}' does not exist")
    version = entry.version if entry.version != LATEST else LOCAL_VERSION
    return CacheEntry(name=entry.name, version=version, target_path=path)


def _handle_init(args: Namespace, settings: Settings, console: Console, *, workspace: Path) -> int:
    console.debug(f"projectName={args.project_name!r} force={args.force}")
    catalog_source = args.catalog or settings.catalog
    if not catalog_source:
        raise CatalogError("No template catalog configured (use --catalog or SCAFFOLDER_CATALOG)")
    entries = load_catalog(catalog_source)
    if not entries:
        raise CatalogError("The template catalog is empty")

    if not args.project_name:
        raise ProjectInfoError(f"A {args.kind} name is required")
    entry = _select_template(entries, args.template, args.kind)
    info = ProjectInfo(
        project_name=args.project_name,
        version=args.project_version,
        template=entry.name,
        kind=args.kind,
        description=args.description,
    )
    context = info.render_context()
    console.debug(f"render context: {dict(context)}")

    target_dir = Path(args.target_dir).expanduser().resolve() if args.target_dir else workspace
    _prepare_target(target_dir, force=args.force, assume_yes=args.yes, console=console)

    cache = ArtifactCache(RegistryClient(args.registry or settings.registry), console=console)
    if args.target_path:
        artifact = _local_artifact(entry, args.target_path)
    else:
        artifact = prepare_template(
            cache,
            entry,
            store_root=settings.store_root,
            target_path=settings.template_root,
            console=console,
        )

    runner: SubprocessCommandRunner | RecordingCommandRunner
    if args.dry_run:
        runner = RecordingCommandRunner()
        console.dry("Commands are recorded, not executed")
    else:
        runner = SubprocessCommandRunner()
    installer = build_installer(cache, runner, console=console)
    installer.install(InstallRequest(entry=entry, artifact=artifact, context=context, target_dir=target_dir))

    if isinstance(runner, RecordingCommandRunner):
        for line in runner.iter_formatted(workspace=target_dir):
            print(line)
    console.success(f"{entry.display_name} initialized in {target_dir}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
