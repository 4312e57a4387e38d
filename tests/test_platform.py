import logging
from pathlib import Path

import pytest

from templated.platform import (
    Initializer,
    Platform,
    PlatformContext,
    PlatformState,
)
from templated.settings import APP_NAME, Settings
from templated.types import LogLevel, Mode


@pytest.fixture
def clean_logging(monkeypatch):
    monkeypatch.delenv("APP_LOG", raising=False)
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    app_logger = logging.getLogger(APP_NAME)
    saved_app_level = app_logger.level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
    app_logger.setLevel(saved_app_level)


def test_init_uses_given_config_and_default_state():
    settings = Settings().release()
    platform = Initializer.from_config(settings).init()
    assert platform.context.config is settings
    assert platform.context.state == PlatformState()


def test_platform_from_config_returns_initializer():
    settings = Settings()
    initializer = Platform.from_config(settings)
    assert initializer.config is settings
    assert initializer.state is None


def test_with_state_and_with_config():
    state = PlatformState()
    settings = Settings().release()
    initializer = Initializer().with_state(state).with_config(settings)
    platform = initializer.init()
    assert platform.context.state is state
    assert platform.context.config is settings


def test_with_config_leaves_original_unchanged():
    original = Initializer()
    updated = original.with_config(Settings().release())
    assert original.config.mode is Mode.DEBUG
    assert updated.config.mode is Mode.RELEASE


def test_platform_delegates_to_context_and_settings():
    settings = Settings().release()
    platform = Initializer.from_config(settings).init()
    assert platform.mode is Mode.RELEASE
    assert platform.network is settings.network
    assert platform.config is settings
    assert platform.state is platform.context.state


def test_context_delegates_to_settings():
    settings = Settings()
    context = PlatformContext(config=settings)
    assert context.workspace is settings.workspace
    assert context.name == settings.name


def test_missing_attribute_raises():
    platform = Platform()
    assert getattr(platform, "no_such_attribute", "fallback") == "fallback"
    assert hasattr(platform, "no_such_attribute") is False
    assert hasattr(platform, "mode") is True


def test_changes_through_platform_reach_settings():
    platform = Initializer().init()
    platform.set_port(7000)
    assert platform.context.config.network.port == 7000


def test_set_curdir_changes_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = tmp_path / "site"
    target.mkdir()
    settings = Settings()
    settings.set_workdir(target)
    Initializer.from_config(settings).set_curdir()
    assert Path.cwd() == target.resolve()


def test_builder_reads_environment(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("APP_MODE", "release")
    platform = Platform.builder().init()
    assert platform.mode is Mode.RELEASE


def test_builder_falls_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("APP_MODE", "sideways")
    initializer = Platform.builder()
    assert initializer.config == Settings()


def test_with_tracing_installs_logging(clean_logging):
    settings = Settings()
    settings.set_log_level(LogLevel.WARN)
    traced = Initializer.from_config(settings).with_tracing()
    assert traced.config is settings
    expected = settings.services.tracing.level.as_logging_level()
    assert expected == logging.WARNING
    assert logging.getLogger(APP_NAME).level == expected
    assert any(handler.name == "templated-tracing" for handler in logging.getLogger().handlers)