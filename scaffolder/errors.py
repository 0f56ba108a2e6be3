"""Error taxonomy for template acquisition and materialization."""
from __future__ import annotations


class ScaffoldError(RuntimeError):
    """Base class for failures that terminate a scaffolding run."""


class RegistryUnreachable(ScaffoldError):
    """Raised when the package registry cannot be queried or downloaded from."""


class CacheWriteFailed(ScaffoldError):
    """Raised when the artifact store or the target directory cannot be written."""


class NoTemplateSelected(ScaffoldError):
    """Raised when installation starts without a resolved catalog entry."""


class UnknownStrategy(ScaffoldError):
    """Raised when a catalog entry declares an unsupported installation strategy."""


class CommandNotAllowed(ScaffoldError):
    """Raised when a command's program is not on the allow-list."""


class CommandFailed(ScaffoldError):
    """Raised when an executed command exits abnormally."""

    def __init__(self, message: str, *, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode


class CustomInstallerMissing(ScaffoldError):
    """Raised when a custom template has no resolvable installer entry point."""


class RenderFailed(ScaffoldError):
    """Raised when one or more template files cannot be rendered."""

    def __init__(self, message: str, *, failures: dict[str, str] | None = None):
        super().__init__(message)
        self.failures = dict(failures or {})


class CatalogError(ScaffoldError):
    """Raised when the template catalog cannot be loaded or is malformed."""


class ProjectInfoError(ScaffoldError):
    """Raised when user supplied project information is invalid."""


__all__ = [
    "CacheWriteFailed",
    "CatalogError",
    "CommandFailed",
    "CommandNotAllowed",
    "CustomInstallerMissing",
    "NoTemplateSelected",
    "ProjectInfoError",
    "RegistryUnreachable",
    "RenderFailed",
    "ScaffoldError",
    "UnknownStrategy",
]
