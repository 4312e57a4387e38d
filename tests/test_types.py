import ipaddress
import logging

import pytest

from templated.types import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    FILTER_ENV_VAR,
    HTTP_TARGET,
    TRACE_LEVEL,
    LogLevel,
    Mode,
    NetAddr,
    fmt_as_env_filter,
    init_tracing,
)


# ---------------------------------------------------------------- LogLevel


@pytest.mark.parametrize(
    "text, level",
    [
        ("debug", LogLevel.DEBUG),
        ("error", LogLevel.ERROR),
        ("info", LogLevel.INFO),
        ("trace", LogLevel.TRACE),
        ("warn", LogLevel.WARN),
        ("off", LogLevel.OFF),
        ("verbose", LogLevel.OFF),
        ("INFO", LogLevel.OFF),
    ],
)
def test_log_level_parse(text, level):
    assert LogLevel.parse(text) is level


def test_log_level_display():
    assert str(LogLevel.parse("info")) == "info"
    assert f"{LogLevel.parse('warn')}" == "warn"


@pytest.mark.parametrize(
    "level", [LogLevel.TRACE, LogLevel.DEBUG, LogLevel.INFO, LogLevel.WARN, LogLevel.ERROR]
)
def test_logging_level_round_trip(level):
    assert LogLevel.from_logging_level(level.as_logging_level()) is level


def test_logging_level_values():
    assert LogLevel.TRACE.as_logging_level() == TRACE_LEVEL
    assert LogLevel.WARN.as_logging_level() == logging.WARNING
    assert LogLevel.OFF.as_logging_level() is None


def test_from_logging_level_special_cases():
    assert LogLevel.from_logging_level(None) is LogLevel.OFF
    assert LogLevel.from_logging_level(logging.CRITICAL) is LogLevel.ERROR


def test_from_logging_level_rejects_unknown():
    with pytest.raises(ValueError):
        LogLevel.from_logging_level(15)


def test_env_filter_format():
    assert fmt_as_env_filter(LogLevel.INFO, "templated") == f"templated=info,{HTTP_TARGET}=info"
    assert LogLevel.TRACE.fmt_as_env_filter("app") == f"app=trace,{HTTP_TARGET}=trace"


# ---------------------------------------------------------------- tracing


@pytest.fixture
def clean_logging(monkeypatch):
    monkeypatch.delenv(FILTER_ENV_VAR, raising=False)
    root = logging.getLogger()
    saved_level = root.level
    saved_handlers = list(root.handlers)
    names = ["tpl-a", "tpl-b", "tpl-c", HTTP_TARGET]
    saved = {name: logging.getLogger(name).level for name in names}
    yield
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
    root.setLevel(saved_level)
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


def _new_handlers(before):
    return [h for h in logging.getLogger().handlers if h not in before]


def test_init_tracing_sets_target_levels(clean_logging):
    init_tracing(LogLevel.INFO, "tpl-a")
    expected = LogLevel.INFO.as_logging_level()
    assert expected == logging.INFO
    assert logging.getLogger("tpl-a").level == expected
    assert logging.getLogger(HTTP_TARGET).level == expected


def test_init_tracing_installs_single_handler(clean_logging):
    before = list(logging.getLogger().handlers)
    init_tracing(LogLevel.INFO, "tpl-a")
    init_tracing(LogLevel.DEBUG, "tpl-a")
    assert len(_new_handlers(before)) == 1
    assert logging.getLogger("tpl-a").level == LogLevel.DEBUG.as_logging_level()
    assert LogLevel.from_logging_level(logging.getLogger("tpl-a").level) is LogLevel.DEBUG


def test_init_tracing_env_override(clean_logging, monkeypatch):
    monkeypatch.setenv(FILTER_ENV_VAR, "tpl-b=warn")
    init_tracing(LogLevel.DEBUG, "tpl-b")
    level = logging.getLogger("tpl-b").level
    assert level == LogLevel.WARN.as_logging_level()
    assert LogLevel.from_logging_level(level) is LogLevel.WARN


def test_init_tracing_emits_filtered_records(clean_logging, capsys):
    init_tracing(LogLevel.INFO, "tpl-c")
    logger = logging.getLogger("tpl-c")
    logger.info("visible message")
    logger.debug("hidden message")
    err = capsys.readouterr().err
    assert "visible message" in err
    assert "tpl-c:" in err
    assert "hidden message" not in err


def test_log_level_init_tracing_off(clean_logging, capsys):
    LogLevel.OFF.init_tracing("tpl-c")
    logging.getLogger("tpl-c").error("silenced")
    assert "silenced" not in capsys.readouterr().err


# ---------------------------------------------------------------- Mode


@pytest.mark.parametrize(
    "text, mode",
    [
        ("Debug", Mode.DEBUG),
        ("d", Mode.DEBUG),
        ("debug", Mode.DEBUG),
        ("dev", Mode.DEBUG),
        ("development", Mode.DEBUG),
        ("Release", Mode.RELEASE),
        ("r", Mode.RELEASE),
        ("release", Mode.RELEASE),
        ("prod", Mode.RELEASE),
        ("production", Mode.RELEASE),
    ],
)
def test_mode_aliases(text, mode):
    assert Mode.parse(text) is mode


def test_mode_parse_rejects_unknown():
    with pytest.raises(ValueError):
        Mode.parse("staging")


def test_mode_display():
    assert str(Mode.parse("prod")) == "release"
    assert str(Mode.parse("dev")) == "debug"


# ---------------------------------------------------------------- NetAddr


def test_netaddr_default():
    addr = NetAddr()
    assert addr.host == DEFAULT_HOST
    assert addr.port == DEFAULT_PORT


def test_netaddr_display():
    assert str(NetAddr("127.0.0.1", 3000)) == "127.0.0.1:3000"


def test_netaddr_parse_url():
    assert NetAddr.parse("http://localhost:8080") == NetAddr("localhost", 8080)


def test_netaddr_parse_ipv6():
    addr = NetAddr.parse("http://[::1]:9000")
    assert addr.port == 9000
    assert addr.ip() == ipaddress.ip_address("::1")


@pytest.mark.parametrize(
    "text", ["http://example.com", "http://example.com:80", "localhost:8080", "/path"]
)
def test_netaddr_parse_errors(text):
    with pytest.raises(ValueError):
        NetAddr.parse(text)


def test_netaddr_from_socket_addr():
    assert NetAddr.from_socket_addr(("10.0.0.1", 9000)) == NetAddr("10.0.0.1", 9000)


def test_netaddr_localhost():
    assert NetAddr.localhost(4000) == NetAddr(DEFAULT_HOST, 4000)


def test_netaddr_socket_addr_round_trip():
    addr = NetAddr("192.168.1.5", 7000)
    assert addr.as_socket_addr() == ("192.168.1.5", 7000)
    assert NetAddr.from_socket_addr(addr.as_socket_addr()) == addr


def test_netaddr_ip():
    assert NetAddr("127.0.0.1", 1).ip() == ipaddress.ip_address("127.0.0.1")


def test_netaddr_ip_rejects_hostname():
    with pytest.raises(ValueError):
        NetAddr("localhost", 80).as_socket_addr()


def test_netaddr_with_methods_return_copies():
    addr = NetAddr("127.0.0.1", 1000)
    moved = addr.with_host("0.0.0.0").with_port(2000)
    assert moved == NetAddr("0.0.0.0", 2000)
    assert addr == NetAddr("127.0.0.1", 1000)


@pytest.mark.parametrize("port", [-1, 65536, "abc", True])
def test_netaddr_invalid_port(port):
    with pytest.raises(ValueError):
        NetAddr("127.0.0.1", port)


def test_netaddr_from_dict():
    assert NetAddr.from_dict({"port": "9001"}) == NetAddr(DEFAULT_HOST, 9001)
    assert NetAddr.from_dict({}) == NetAddr()
    assert NetAddr.from_dict(None) == NetAddr()


def test_netaddr_from_dict_rejects_non_mapping():
    with pytest.raises(ValueError):
        NetAddr.from_dict(["127.0.0.1", 80])


def test_netaddr_ordering_and_hash():
    low = NetAddr("a", 1)
    high = NetAddr("a", 2)
    assert low < high
    assert len({low, NetAddr("a", 1), high}) == 2