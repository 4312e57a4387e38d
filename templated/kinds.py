"""Configuration sections: database, network, scope, services, tracing and workspace."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .errors import PlatformError
from .serialization import to_json
from .types import LogLevel, NetAddr, _install_logging

DEFAULT_APPLICATION = "templated"
DEFAULT_BASEPATH = "/"
DEFAULT_DIR_ARTIFACTS = "artifacts"
DEFAULT_WORKDIR = "dist"

_U16_MAX = 2**16 - 1
_U32_MAX = 2**32 - 1
_TRUE = frozenset({"true", "1", "yes", "y", "on"})
_FALSE = frozenset({"false", "0", "no", "n", "off"})

_log = logging.getLogger(__name__)


def _section(data: Any, name: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise PlatformError.config(f"expected a table for `{name}`, got {type(data).__name__}")
    return data


def _bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise PlatformError.config(f"invalid boolean for `{key}`: {value!r}")


def _int(value: Any, key: str, maximum: int) -> int:
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= maximum:
        raise PlatformError.config(f"invalid integer for `{key}`: {value!r}")
    return value


def _str(value: Any, key: str) -> str:
    if isinstance(value, os.PathLike):
        return os.fspath(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise PlatformError.config(f"invalid string for `{key}`: {value!r}")


def _level(value: Any) -> LogLevel:
    if isinstance(value, LogLevel):
        return value
    try:
        return LogLevel(str(value))
    except ValueError:
        raise PlatformError.config(f"unknown log level: {value!r}") from None


def _address(value: Any) -> NetAddr:
    if isinstance(value, NetAddr):
        return value
    try:
        return NetAddr.from_dict(_section(value, "address"))
    except ValueError as exc:
        raise PlatformError.config(exc) from None


def _current_exe() -> Path:
    argv0 = sys.argv[0] if sys.argv else ""
    if argv0 and Path(argv0).is_file():
        return Path(argv0).resolve()
    if sys.executable:
        return Path(sys.executable)
    raise RuntimeError("unable to determine the location of the executable")


def _application() -> str:
    try:
        return str(_current_exe())
    except RuntimeError:
        return DEFAULT_APPLICATION


@dataclass
class DatabaseConfig:
    """Connection settings for the database service."""

    max_connections: int = 200
    pool_size: int = 15
    url: str = ""

    def __str__(self) -> str:
        return to_json(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> DatabaseConfig:
        """Build from a mapping; ``link`` and ``uri`` are accepted for ``url``."""
        data = _section(data, "database")
        config = cls()
        if "max_connections" in data:
            config.max_connections = _int(data["max_connections"], "max_connections", _U32_MAX)
        if "pool_size" in data:
            config.pool_size = _int(data["pool_size"], "pool_size", _U32_MAX)
        for key in ("url", "link", "uri"):
            if key in data:
                config.url = _str(data[key], key)
                break
        return config


@dataclass
class NetworkConfig:
    """Where the server listens and how it is reached."""

    address: NetAddr = field(default_factory=NetAddr)
    basepath: str = DEFAULT_BASEPATH
    max_connections: int = 15
    open: bool = False

    def __str__(self) -> str:
        return to_json(self)

    @property
    def host(self) -> str:
        return self.address.host

    @host.setter
    def host(self, host: str) -> None:
        self.address = self.address.with_host(host)

    @property
    def port(self) -> int:
        return self.address.port

    @port.setter
    def port(self, port: int) -> None:
        self.address = self.address.with_port(port)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> NetworkConfig:
        data = _section(data, "network")
        config = cls()
        if "address" in data:
            config.address = _address(data["address"])
        if "basepath" in data:
            config.basepath = _str(data["basepath"], "basepath")
        if "max_connections" in data:
            config.max_connections = _int(data["max_connections"], "max_connections", _U16_MAX)
        if "open" in data:
            config.open = _bool(data["open"], "open")
        return config

    def as_socket_addr(self) -> tuple[str, int]:
        """The address as an ``(ip, port)`` tuple."""
        return self.address.as_socket_addr()

    def ip(self):
        """The host as an IP address."""
        return self.address.ip()

    def with_host(self, host: str) -> NetworkConfig:
        return replace(self, address=self.address.with_host(host))

    def with_port(self, port: int) -> NetworkConfig:
        return replace(self, address=self.address.with_port(port))


@dataclass
class Scope:
    """The application's position in the filesystem: a context and an asset directory."""

    context: str | None = None
    workdir: str = DEFAULT_WORKDIR

    def __str__(self) -> str:
        return str(self.as_path())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Scope:
        data = _section(data, "scope")
        scope = cls()
        context = data.get("context")
        if context is not None:
            scope.context = _str(context, "context")
        if "workdir" in data:
            scope.workdir = _str(data["workdir"], "workdir")
        return scope

    @classmethod
    def parse(cls, text: str) -> Scope:
        """A scope whose working directory is ``text`` and which has no context."""
        return cls(context=None, workdir=str(text))

    def as_path(self) -> Path:
        """The context joined with the working directory."""
        if self.context is not None:
            return Path(self.context) / self.workdir
        return Path(self.workdir)

    def set_cwd(self) -> None:
        """Change the process's current directory to this scope."""
        os.chdir(self.as_path())


@dataclass
class TracingConfig:
    """Options for the application's log output."""

    ansi: bool = True
    file: bool = False
    level: LogLevel = LogLevel.TRACE
    line_number: bool = False
    target: bool = True
    thread_ids: bool = False
    thread_names: bool = False

    def __post_init__(self) -> None:
        self.level = _level(self.level)

    def __str__(self) -> str:
        return to_json(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> TracingConfig:
        data = _section(data, "tracing")
        values: dict[str, Any] = {}
        for key in ("ansi", "file", "line_number", "target", "thread_ids", "thread_names"):
            if key in data:
                values[key] = _bool(data[key], key)
        if "level" in data:
            values["level"] = _level(data["level"])
        return cls(**values)

    def init_tracing(self, name: str) -> None:
        """Install the log handler for ``name`` using these options."""
        _install_logging(
            self.level,
            name,
            ansi=self.ansi,
            target=self.target,
            file=self.file,
            line_number=self.line_number,
            thread_ids=self.thread_ids,
            thread_names=self.thread_names,
        )


@dataclass
class ServicesConfig:
    """Settings of the services the platform relies on."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)

    def __str__(self) -> str:
        return to_json(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ServicesConfig:
        data = _section(data, "services")
        config = cls()
        if "database" in data:
            config.database = DatabaseConfig.from_dict(data["database"])
        if "tracing" in data:
            config.tracing = TracingConfig.from_dict(data["tracing"])
        return config


@dataclass
class WorkspaceConfig:
    """Locations of the application, its artifacts and its working directory."""

    application: str = field(default_factory=_application)
    artifacts: str = DEFAULT_DIR_ARTIFACTS
    build: str | None = None
    workdir: Path = field(default_factory=lambda: Path(DEFAULT_WORKDIR))

    def __post_init__(self) -> None:
        self.workdir = Path(self.workdir)

    def __str__(self) -> str:
        return to_json(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> WorkspaceConfig:
        """Build from a mapping; a missing ``workdir`` means the current directory."""
        data = _section(data, "workspace")
        application = data.get("application")
        build = data.get("build")
        workdir = data.get("workdir")
        return cls(
            application=_application() if application is None else _str(application, "application"),
            artifacts=_str(data.get("artifacts", DEFAULT_DIR_ARTIFACTS), "artifacts"),
            build=None if build is None else _str(build, "build"),
            workdir=Path.cwd() if workdir is None else Path(_str(workdir, "workdir")),
        )

    def set_current_dir(self) -> None:
        """Change the process's current directory to the workspace."""
        _log.info("setting current directory to: %s", self.workdir)
        os.chdir(self.workdir)

    def is_workdir_valid(self) -> bool:
        return self.workdir.is_dir()

    def path_to_application(self) -> Path:
        """The application binary: the current executable if unset, else inside the workdir."""
        if not self.application:
            return _current_exe()
        return self.workdir / self.application

    def path_to_artifacts(self) -> Path:
        """The directory inside the workspace that holds build artifacts, logs and the like."""
        return self.workdir / self.artifacts