"""Application settings, assembled from defaults, config files and the environment."""

from __future__ import annotations

import copy
import json
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from .errors import PlatformError
from .kinds import (
    DEFAULT_WORKDIR,
    NetworkConfig,
    Scope,
    ServicesConfig,
    WorkspaceConfig,
)
from .serialization import to_data, to_json
from .types import DEFAULT_HOST, DEFAULT_PORT, LogLevel, Mode

APP_NAME = "templated"
VERSION = "0.0.0"
DEFAULT_DIR_CONFIG = ".config"
DEFAULT_CONFIG_FILE = "Templated.toml"

ENV_PREFIX = "app_"
_SOURCE_NAMES = (
    "default.config",
    "server.config",
    "docker.config",
    "app.config",
    "prod.config",
)
_OVERRIDES = (
    ("APP_MODE", ("mode",)),
    ("APP_NAME", ("name",)),
    ("APP_HOST", ("network", "address", "host")),
    ("APP_PORT", ("network", "address", "port")),
    ("APP_WORKDIR", ("workspace", "workdir")),
)


def _load_toml(path: Path) -> Any:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _load_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


_LOADERS = {".toml": _load_toml, ".json": _load_json}


def _resolve_file(path: Path) -> Path | None:
    """Find the file a source name refers to, trying each known extension."""
    if path.suffix in _LOADERS and path.is_file():
        return path
    for extension in _LOADERS:
        candidate = path.with_name(path.name + extension)
        if candidate.is_file():
            return candidate
    return None


def _read_file(path: Path) -> dict[str, Any]:
    try:
        data = _LOADERS[path.suffix](path)
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
        raise PlatformError.config(f"{path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise PlatformError.config(f"{path}: expected a table at the top level")
    return dict(data)


def _merge(target: dict[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge ``source`` into ``target``; values from ``source`` win."""
    for key, value in source.items():
        if isinstance(value, Mapping):
            existing = target.get(key)
            if not isinstance(existing, dict):
                existing = {}
                target[key] = existing
            _merge(existing, value)
        else:
            target[key] = value
    return target


def _set_path(target: dict[str, Any], parts: tuple[str, ...] | list[str], value: Any) -> None:
    node = target
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def _defaults() -> dict[str, Any]:
    return {
        "mode": "debug",
        "name": APP_NAME,
        "version": VERSION,
        "scope": {"context": ".", "workdir": DEFAULT_WORKDIR},
        "network": {"address": {"host": DEFAULT_HOST, "port": DEFAULT_PORT}},
        "services": {"tracing": {"level": "info"}},
    }


def _environment(environ: Mapping[str, str]) -> dict[str, Any]:
    """Nested values from ``APP_*`` variables, split on underscores."""
    result: dict[str, Any] = {}
    for key in sorted(environ):
        lowered = key.lower()
        if not lowered.startswith(ENV_PREFIX):
            continue
        parts = lowered[len(ENV_PREFIX):].split("_")
        if not all(parts):
            continue
        _set_path(result, parts, environ[key])
    return result


def load_settings_data(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Collect the raw settings data from every source, in order of precedence."""
    env = os.environ if environ is None else environ
    data = _defaults()
    config_dir = Path(env.get("APP_CONFIG_DIR", DEFAULT_DIR_CONFIG))
    fname = env.get("APP_CONFIG_FILE", DEFAULT_CONFIG_FILE)

    for name in (*_SOURCE_NAMES, fname):
        path = _resolve_file(config_dir / name)
        if path is not None:
            _merge(data, _read_file(path))

    _merge(data, _environment(env))

    path = _resolve_file(Path(fname))
    if path is not None:
        _merge(data, _read_file(path))

    for variable, parts in _OVERRIDES:
        value = env.get(variable)
        if value is not None:
            _set_path(data, parts, value)
    return data


def _mode(value: Any) -> Mode:
    try:
        return Mode.parse(value)
    except (ValueError, TypeError) as exc:
        raise PlatformError.config(exc) from None


def _text(value: Any, key: str) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise PlatformError.config(f"invalid string for `{key}`: {value!r}")


@dataclass
class Settings:
    """The complete configuration of the platform."""

    mode: Mode = Mode.DEBUG
    name: str = APP_NAME
    network: NetworkConfig = field(default_factory=NetworkConfig)
    scope: Scope = field(default_factory=Scope)
    services: ServicesConfig = field(default_factory=ServicesConfig)
    version: str = VERSION
    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)

    def __post_init__(self) -> None:
        self.mode = _mode(self.mode)

    def __str__(self) -> str:
        return to_json(self)

    @classmethod
    def build(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Load settings from defaults, config files and the given (or process) environment."""
        return cls.from_dict(load_settings_data(environ))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Settings:
        """Build from a mapping; missing keys keep their defaults."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise PlatformError.config(f"expected a table for settings, got {type(data).__name__}")
        settings = cls()
        if "mode" in data:
            settings.mode = _mode(data["mode"])
        if "name" in data:
            settings.name = _text(data["name"], "name")
        if "version" in data:
            settings.version = _text(data["version"], "version")
        if "network" in data:
            settings.network = NetworkConfig.from_dict(data["network"])
        if "scope" in data:
            settings.scope = Scope.from_dict(data["scope"])
        if "services" in data:
            settings.services = ServicesConfig.from_dict(data["services"])
        if "workspace" in data:
            settings.workspace = WorkspaceConfig.from_dict(data["workspace"])
        return settings

    def to_dict(self) -> dict[str, Any]:
        return {item.name: to_data(getattr(self, item.name)) for item in fields(self)}

    def debug(self) -> Settings:
        """A copy of these settings in debug mode."""
        settings = copy.deepcopy(self)
        settings.mode = Mode.DEBUG
        return settings

    def release(self) -> Settings:
        """A copy of these settings in release mode."""
        settings = copy.deepcopy(self)
        settings.mode = Mode.RELEASE
        return settings

    def init_tracing(self) -> None:
        """Install logging as described by the tracing service settings."""
        self.services.tracing.init_tracing(APP_NAME)

    def set_workdir(self, workdir: str | os.PathLike[str] | None) -> None:
        """Set the workspace directory; ``None`` leaves it unchanged."""
        if workdir is not None:
            self.workspace.workdir = Path(workdir)

    def set_port(self, port: int) -> None:
        self.network.port = port

    def set_log_level(self, level: LogLevel | str) -> None:
        self.services.tracing.level = LogLevel(level)