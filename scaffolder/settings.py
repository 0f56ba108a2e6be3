"""Runtime settings assembled from the config file and the environment."""
from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping
import os

from .config_loader import find_config_file, load_config_file
from .registry import DEFAULT_REGISTRY

DEFAULT_HOME_DIRNAME = ".scaffolder"
CONFIG_STEM = "config"

ENV_HOME = "SCAFFOLDER_HOME"
ENV_LOG_LEVEL = "SCAFFOLDER_LOG_LEVEL"
ENV_REGISTRY = "SCAFFOLDER_REGISTRY"
ENV_CATALOG = "SCAFFOLDER_CATALOG"


def _home_from_env(env: Mapping[str, str]) -> Path:
    raw = env.get(ENV_HOME)
    if raw:
        path = Path(raw).expanduser()
        # Relative values are taken relative to the user's home directory.
        return path if path.is_absolute() else Path.home() / path
    return Path.home() / DEFAULT_HOME_DIRNAME


@dataclass(frozen=True, slots=True)
class Settings:
    home: Path
    registry: str = DEFAULT_REGISTRY
    catalog: str | None = None
    log_level: str = "info"
    store_dir: Path | None = None

    @property
    def template_root(self) -> Path:
        return self.home / "template"

    @property
    def store_root(self) -> Path:
        return self.store_dir or self.template_root / "node_modules"

    @classmethod
    def from_mapping(cls, home: Path, data: Mapping[str, Any]) -> "Settings":
        section = data.get("global", data)
        if not isinstance(section, Mapping):
            raise TypeError("[global] section must be a table")
        store_dir = section.get("store_dir")
        store_path: Path | None = None
        if store_dir:
            store_path = Path(str(store_dir)).expanduser()
            if not store_path.is_absolute():
                store_path = home / store_path
        catalog = section.get("catalog")
        return cls(
            home=home,
            registry=str(section.get("registry") or DEFAULT_REGISTRY),
            catalog=str(catalog) if catalog else None,
            log_level=str(section.get("log_level") or "info"),
            store_dir=store_path,
        )

    @classmethod
    def load(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """Read ``<home>/config.*`` and apply environment overrides."""

        env = dict(os.environ) if env is None else env
        home = _home_from_env(env)
        data: Mapping[str, Any] = {}
        config_path = find_config_file(home, CONFIG_STEM)
        if config_path is not None:
            data = load_config_file(config_path)
        settings = cls.from_mapping(home, data)

        overrides: dict[str, Any] = {}
        if env.get(ENV_REGISTRY):
            overrides["registry"] = env[ENV_REGISTRY]
        if env.get(ENV_CATALOG):
            overrides["catalog"] = env[ENV_CATALOG]
        if env.get(ENV_LOG_LEVEL):
            overrides["log_level"] = env[ENV_LOG_LEVEL]
        return replace(settings, **overrides) if overrides else settings


__all__ = [
    "ENV_CATALOG",
    "ENV_HOME",
    "ENV_LOG_LEVEL",
    "ENV_REGISTRY",
    "Settings",
]
