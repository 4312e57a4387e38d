"""Small value types used by the configuration: log levels, run modes and addresses."""

from __future__ import annotations

import ipaddress
import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any
from urllib.parse import urlsplit

TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

FILTER_ENV_VAR = "APP_LOG"
HTTP_TARGET = "aiohttp"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080

_OFF = logging.CRITICAL + 10
_HANDLER_NAME = "templated-tracing"
_MAX_PORT = 65535


class LogLevel(StrEnum):
    """Verbosity of the application's logging."""

    DEBUG = "debug"
    ERROR = "error"
    INFO = "info"
    TRACE = "trace"
    WARN = "warn"
    OFF = "off"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> LogLevel:
        """Parse a level name; anything unrecognised turns logging off."""
        try:
            return cls(text)
        except ValueError:
            return cls.OFF

    @classmethod
    def from_logging_level(cls, level: int | None) -> LogLevel:
        """Map a :mod:`logging` level number onto a log level."""
        if level is None or level >= _OFF:
            return cls.OFF
        try:
            return _FROM_LOGGING[level]
        except KeyError:
            raise ValueError(f"unsupported logging level: {level}") from None

    def as_logging_level(self) -> int | None:
        """The :mod:`logging` level number, or ``None`` when logging is off."""
        return _TO_LOGGING.get(self)

    def fmt_as_env_filter(self, name: str) -> str:
        return fmt_as_env_filter(self, name)

    def init_tracing(self, name: str) -> None:
        init_tracing(self, name)


_TO_LOGGING = {
    LogLevel.TRACE: TRACE_LEVEL,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}
_FROM_LOGGING = {number: level for level, number in _TO_LOGGING.items()}
_FROM_LOGGING[logging.CRITICAL] = LogLevel.ERROR


class Mode(StrEnum):
    """Runtime mode of the application."""

    DEBUG = "debug"
    RELEASE = "release"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> Mode:
        """Parse a mode name or one of its aliases."""
        if isinstance(text, Mode):
            return text
        try:
            return _MODE_ALIASES[text]
        except KeyError:
            raise ValueError(
                f"unknown variant `{text}`, expected one of: "
                + ", ".join(sorted(_MODE_ALIASES))
            ) from None


_MODE_ALIASES = {
    **dict.fromkeys(("Debug", "d", "debug", "dev", "development"), Mode.DEBUG),
    **dict.fromkeys(("Release", "r", "release", "prod", "production"), Mode.RELEASE),
}

_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443, "ftp": 21}


def _coerce_port(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"invalid port: {value!r}")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise ValueError(f"invalid port: {value!r}")
        value = int(value)
    if not isinstance(value, int) or not 0 <= value <= _MAX_PORT:
        raise ValueError(f"invalid port: {value!r}")
    return value


@dataclass(frozen=True, order=True)
class NetAddr:
    """A host and port pair."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    def __post_init__(self) -> None:
        object.__setattr__(self, "host", str(self.host))
        object.__setattr__(self, "port", _coerce_port(self.port))

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def parse(cls, text: str) -> NetAddr:
        """Parse a URL such as ``http://localhost:8080`` into its host and port."""
        parts = urlsplit(text)
        if not parts.scheme:
            raise ValueError(f"relative URL without a base: {text!r}")
        host = parts.hostname
        if not host:
            raise ValueError(f"failed to parse host: {text!r}")
        port = parts.port
        if port is None or _DEFAULT_PORTS.get(parts.scheme.lower()) == port:
            raise ValueError(f"failed to parse port: {text!r}")
        if ":" in host:
            host = f"[{host}]"
        return cls(host, port)

    @classmethod
    def from_socket_addr(cls, addr: tuple) -> NetAddr:
        """Build from a socket address tuple ``(ip, port, ...)``."""
        host, port = addr[0], addr[1]
        return cls(str(ipaddress.ip_address(host)), port)

    @classmethod
    def localhost(cls, port: int) -> NetAddr:
        return cls(DEFAULT_HOST, port)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> NetAddr:
        """Build from a mapping, using defaults for missing keys."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError(f"expected a mapping for an address, got {type(data).__name__}")
        return cls(data.get("host", DEFAULT_HOST), data.get("port", DEFAULT_PORT))

    def ip(self) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
        """The host as an IP address; raises ``ValueError`` for host names."""
        return ipaddress.ip_address(self.host.strip("[]"))

    def as_socket_addr(self) -> tuple[str, int]:
        """The address as a ``(ip, port)`` tuple usable with sockets."""
        return str(self.ip()), self.port

    def with_host(self, host: str) -> NetAddr:
        return replace(self, host=str(host))

    def with_port(self, port: int) -> NetAddr:
        return replace(self, port=port)


def fmt_as_env_filter(level: LogLevel, name: str) -> str:
    """The default filter directive for the application and its HTTP layer."""
    return f"{name}={level},{HTTP_TARGET}={level}"


def _threshold(level: LogLevel | None) -> int:
    if level is None:
        return _OFF
    number = level.as_logging_level()
    return _OFF if number is None else number


def _parse_filter(spec: str) -> tuple[LogLevel | None, dict[str, LogLevel]]:
    default: LogLevel | None = None
    targets: dict[str, LogLevel] = {}
    for directive in (part.strip() for part in spec.split(",")):
        if not directive:
            continue
        if "=" in directive:
            target, level = directive.split("=", 1)
            targets[target.strip()] = LogLevel.parse(level.strip().lower())
        elif directive.lower() in LogLevel._value2member_map_:
            default = LogLevel(directive.lower())
        else:
            targets[directive] = LogLevel.TRACE
    return default, targets


_COLORS = {
    "TRACE": "\x1b[35m",
    "DEBUG": "\x1b[34m",
    "INFO": "\x1b[32m",
    "WARNING": "\x1b[33m",
    "ERROR": "\x1b[31m",
    "CRITICAL": "\x1b[1;31m",
}
_RESET = "\x1b[0m"


class _CompactFormatter(logging.Formatter):
    def __init__(
        self,
        *,
        ansi: bool,
        target: bool,
        file: bool,
        line_number: bool,
        thread_ids: bool,
        thread_names: bool,
    ) -> None:
        super().__init__()
        self.ansi = ansi
        self.target = target
        self.file = file
        self.line_number = line_number
        self.thread_ids = thread_ids
        self.thread_names = thread_names

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        if self.ansi and level in _COLORS:
            level = f"{_COLORS[level]}{level}{_RESET}"
        parts = [f"{record.relativeCreated / 1000:12.6f}s", level]
        if self.thread_names:
            parts.append(record.threadName or "")
        if self.thread_ids:
            parts.append(f"ThreadId({record.thread})")
        if self.target:
            parts.append(f"{record.name}:")
        if self.file or self.line_number:
            location = record.pathname if self.file else ""
            if self.line_number:
                location = f"{location}:{record.lineno}"
            parts.append(location)
        parts.append(record.getMessage())
        text = " ".join(parts)
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def _install_logging(
    level: LogLevel,
    name: str,
    *,
    ansi: bool = True,
    target: bool = True,
    file: bool = False,
    line_number: bool = False,
    thread_ids: bool = False,
    thread_names: bool = False,
) -> None:
    spec = os.environ.get(FILTER_ENV_VAR) or fmt_as_env_filter(level, name)
    default, targets = _parse_filter(spec)

    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.name == _HANDLER_NAME:
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.name = _HANDLER_NAME
    handler.setLevel(_threshold(level))
    handler.setFormatter(
        _CompactFormatter(
            ansi=ansi,
            target=target,
            file=file,
            line_number=line_number,
            thread_ids=thread_ids,
            thread_names=thread_names,
        )
    )
    root.addHandler(handler)
    root.setLevel(_threshold(default))
    for target_name, target_level in targets.items():
        logging.getLogger(target_name).setLevel(_threshold(target_level))
    logging.getLogger(name).debug("Successfully initialized tracing with level: %s", level)


def init_tracing(level: LogLevel, name: str) -> None:
    """Install a compact stderr log handler filtered for ``name`` at ``level``.

    The filter may be overridden through the ``APP_LOG`` environment variable.
    """
    _install_logging(LogLevel(level), name)