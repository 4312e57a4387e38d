"""Error type shared by the platform's configuration, serialization and runtime code."""

from __future__ import annotations

import json
import tomllib
from enum import StrEnum


class ErrorKind(StrEnum):
    """The category an error belongs to."""

    CONFIG = "config"
    SERDE = "serde"
    UNKNOWN = "unknown"


class PlatformError(Exception):
    """An error carrying a kind and a human readable message."""

    def __init__(self, kind: ErrorKind | str, message: object) -> None:
        kind = ErrorKind(kind)
        message = str(message)
        super().__init__(kind, message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"[{self.kind}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value!r}, {self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PlatformError):
            return NotImplemented
        return (self.kind, self.message) == (other.kind, other.message)

    def __hash__(self) -> int:
        return hash((self.kind, self.message))

    @classmethod
    def config(cls, message: object) -> PlatformError:
        """Create a configuration error."""
        return cls(ErrorKind.CONFIG, message)

    @classmethod
    def serde(cls, message: object) -> PlatformError:
        """Create a (de)serialization error."""
        return cls(ErrorKind.SERDE, message)

    @classmethod
    def unknown(cls, message: object) -> PlatformError:
        """Create an error of no particular kind."""
        return cls(ErrorKind.UNKNOWN, message)

    @classmethod
    def from_exception(cls, exc: BaseException | str) -> PlatformError:
        """Classify an arbitrary exception (or a bare message) as a platform error."""
        if isinstance(exc, PlatformError):
            return exc
        if isinstance(exc, str):
            return cls.unknown(exc)
        if isinstance(exc, tomllib.TOMLDecodeError):
            return cls.config(exc)
        if isinstance(exc, json.JSONDecodeError):
            return cls.serde(exc)
        return cls.unknown(exc)