"""Command line interface: argument parsing and the handling of each command."""

from __future__ import annotations

import argparse
import asyncio
import copy
import logging
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from .errors import PlatformError
from .platform import Platform, PlatformContext
from .serialization import to_data, to_json
from .server import Server
from .settings import APP_NAME, VERSION, Settings

DEFAULT_CLI_CONFIG = "Puzzled.toml"
_MAX_PORT = 65535

_log = logging.getLogger(__name__)


@runtime_checkable
class AsyncHandle(Protocol):
    """Something that processes itself (a command, an event) against a context."""

    async def handle(self, ctx: Any) -> Any: ...


class BuildOpts(StrEnum):
    """Targets the build command knows about."""

    WASM = "wasm"

    def __str__(self) -> str:
        return self.value


class DeployOpts(StrEnum):
    """Targets the deploy command knows about."""

    WASM = "wasm"

    def __str__(self) -> str:
        return self.value


@dataclass
class BuildCmd:
    """Build the application."""

    args: BuildOpts | None = None
    platform: str | None = None
    target: str | None = None
    update: bool = False

    def __str__(self) -> str:
        return to_json(self)

    async def handle(self, ctx: PlatformContext) -> None:
        _workspace = ctx.config.workspace
        if self.args is BuildOpts.WASM:
            _log.info("Building for WebAssembly...")


@dataclass
class DeployCmd:
    """Deploy the application."""

    args: DeployOpts | None = None
    kind: str | None = None
    platform: str | None = None
    target: str | None = None

    def __str__(self) -> str:
        return to_json(self)


@dataclass
class ServeRun:
    """Options of the ``serve run`` subcommand."""

    prefix: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"Run": {"prefix": self.prefix}}


@dataclass
class ServeCmd:
    """Serve the workspace's artifacts over HTTP."""

    args: ServeRun | None = None
    host: str | None = None
    port: int | None = None
    workdir: str | None = None

    def __str__(self) -> str:
        return to_json(self)

    async def handle(self, ctx: PlatformContext) -> None:
        """Apply the given host, port and workdir to the settings, then serve."""
        if self.host is not None:
            ctx.config.network.host = self.host
        if self.port is not None:
            ctx.config.network.port = self.port
        ctx.config.set_workdir(self.workdir)
        server = Server.from_config(copy.deepcopy(ctx.config))
        await server.serve()


_COMMAND_NAMES: dict[type, str] = {BuildCmd: "build", ServeCmd: "serve"}


@dataclass
class Cli:
    """The parsed command line."""

    command: BuildCmd | ServeCmd | None = None
    config: str = DEFAULT_CLI_CONFIG
    release: bool = False
    update: bool = False
    verbose: bool = False

    def __str__(self) -> str:
        return to_json(self)

    def to_dict(self) -> dict[str, Any]:
        command = None
        if self.command is not None:
            command = {_COMMAND_NAMES[type(self.command)]: to_data(self.command)}
        return {
            "command": command,
            "config": self.config,
            "release": self.release,
            "update": self.update,
            "verbose": self.verbose,
        }

    @classmethod
    def parse(cls, argv: Sequence[str] | None = None) -> Cli:
        """Parse ``argv`` (the process arguments by default); with none, show help and exit."""
        parser = build_parser()
        args = list(sys.argv[1:] if argv is None else argv)
        if not args:
            parser.print_help(sys.stderr)
            raise SystemExit(2)
        ns = parser.parse_args(args)
        command: BuildCmd | ServeCmd | None = None
        if ns.command == "build":
            command = BuildCmd(
                args=BuildOpts(ns.build_opts) if ns.build_opts else None,
                platform=ns.build_platform,
                target=ns.build_target,
                update=ns.build_update,
            )
        elif ns.command == "serve":
            command = ServeCmd(
                args=ServeRun(prefix=ns.run_prefix) if ns.serve_opts == "run" else None,
                host=ns.serve_host,
                port=ns.serve_port,
                workdir=ns.serve_workdir,
            )
        return cls(
            command=command,
            config=ns.config,
            release=ns.release,
            update=ns.update,
            verbose=ns.verbose,
        )

    async def handle(self, ctx: PlatformContext) -> None:
        """Run the selected command, if any."""
        if self.command is not None:
            await self.command.handle(ctx)


def _port(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {text!r}") from None
    if not 0 <= value <= _MAX_PORT:
        raise argparse.ArgumentTypeError(f"port out of range: {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    """The argument parser for the command line."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="A server for publishing WebAssembly applications.",
    )
    parser.add_argument("-C", "--config", default=DEFAULT_CLI_CONFIG)
    parser.add_argument("-r", "--release", action="store_true")
    parser.add_argument("-u", "--update", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {VERSION}")
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    build = commands.add_parser("build", help="build the application")
    build.add_argument("-p", "--platform", dest="build_platform")
    build.add_argument("-t", "--target", dest="build_target")
    build.add_argument("-u", "--update", dest="build_update", action="store_true")
    build_opts = build.add_subparsers(dest="build_opts", metavar="TARGET")
    build_opts.add_parser("wasm", help="build for WebAssembly")

    serve = commands.add_parser("serve", help="serve the application")
    serve.add_argument("-H", "--host", dest="serve_host")
    serve.add_argument("-p", "--port", dest="serve_port", type=_port)
    serve.add_argument("-w", "--workdir", dest="serve_workdir")
    serve_opts = serve.add_subparsers(dest="serve_opts", metavar="OPTS")
    run = serve_opts.add_parser("run", help="run the server")
    run.add_argument("-p", "--prefix", dest="run_prefix")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Load the settings, set up the platform and run the requested command."""
    try:
        settings = Settings.build()
    except PlatformError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    _log.debug("settings: %s", settings)
    platform = Platform.from_config(settings).with_tracing().init()
    cli = Cli.parse(argv)
    asyncio.run(cli.handle(platform.context))
    return 0