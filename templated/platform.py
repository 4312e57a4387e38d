"""The platform: the application's settings and state, and how they are put together."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from .errors import PlatformError
from .settings import Settings

_log = logging.getLogger(__name__)


@dataclass
class PlatformState:
    """Runtime state shared across the platform."""


@dataclass
class PlatformContext:
    """Settings and state; attributes not found here are looked up on the settings."""

    config: Settings = field(default_factory=Settings)
    state: PlatformState = field(default_factory=PlatformState)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") or "config" not in self.__dict__:
            raise AttributeError(name)
        return getattr(self.__dict__["config"], name)


@dataclass
class Initializer:
    """Assembles a :class:`Platform` step by step."""

    config: Settings = field(default_factory=Settings)
    state: PlatformState | None = None

    @classmethod
    def from_config(cls, config: Settings) -> Initializer:
        return cls(config=config)

    def with_config(self, config: Settings) -> Initializer:
        return replace(self, config=config)

    def with_state(self, state: PlatformState) -> Initializer:
        return replace(self, state=state)

    def set_curdir(self) -> Initializer:
        """Change the current directory to the configured workspace."""
        self.config.workspace.set_current_dir()
        return self

    def with_tracing(self) -> Initializer:
        """Install logging as configured."""
        self.config.init_tracing()
        return self

    def init(self) -> Platform:
        state = self.state if self.state is not None else PlatformState()
        return Platform(PlatformContext(config=self.config, state=state))


@dataclass
class Platform:
    """The application's entry point; attributes are looked up on its context."""

    context: PlatformContext = field(default_factory=PlatformContext)

    @classmethod
    def builder(cls) -> Initializer:
        """An initializer with settings loaded from the environment, or defaults if that fails."""
        try:
            config = Settings.build()
        except PlatformError as exc:
            _log.debug("falling back to default settings: %s", exc)
            config = Settings()
        return Initializer(config=config)

    @classmethod
    def from_config(cls, config: Settings) -> Initializer:
        return Initializer.from_config(config)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") or "context" not in self.__dict__:
            raise AttributeError(name)
        return getattr(self.__dict__["context"], name)