"""The HTTP server that publishes the workspace's artifacts, and the build worker's context."""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from aiohttp import web

from .settings import Settings
from .types import NetAddr

_log = logging.getLogger(__name__)

_SENSITIVE_HEADERS = frozenset({"authorization"})

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _default_address() -> tuple[str, int]:
    return NetAddr().as_socket_addr()


@dataclass
class ServerConfig:
    """Where the server listens, the path it is mounted at and the directory it serves."""

    address: tuple[str, int] = field(default_factory=_default_address)
    basepath: str = "/"
    workdir: Path = field(default_factory=Path.cwd)

    def __post_init__(self) -> None:
        host, port = self.address
        self.address = (str(host), int(port))
        self.workdir = Path(self.workdir)

    @classmethod
    def from_settings(cls, settings: Settings) -> ServerConfig:
        """Take the address and basepath from the network settings and serve the artifacts."""
        return cls(
            address=settings.network.address.as_socket_addr(),
            basepath=settings.network.basepath,
            workdir=settings.workspace.path_to_artifacts(),
        )


@dataclass
class ServerState:
    """Runtime state of the server: clients, data and the like."""


@dataclass
class ServerContext:
    """The server's configuration together with its state."""

    config: ServerConfig = field(default_factory=ServerConfig)
    state: ServerState = field(default_factory=ServerState)

    @classmethod
    def from_settings(cls, settings: Settings) -> ServerContext:
        return cls(config=ServerConfig.from_settings(settings), state=ServerState())

    def address(self) -> tuple[str, int]:
        """The ``(ip, port)`` the server binds to."""
        return self.config.address

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") or "config" not in self.__dict__:
            raise AttributeError(name)
        return getattr(self.__dict__["config"], name)


CONTEXT_KEY = web.AppKey("context", ServerContext)


async def graceful_shutdown(context: ServerContext) -> None:
    """Wait until the process is interrupted (Ctrl-C), then return."""
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    try:
        loop.add_signal_handler(signal.SIGINT, stop.set)

        def restore() -> None:
            loop.remove_signal_handler(signal.SIGINT)

    except (NotImplementedError, RuntimeError):
        previous = signal.signal(
            signal.SIGINT, lambda *_: loop.call_soon_threadsafe(stop.set)
        )

        def restore() -> None:
            signal.signal(signal.SIGINT, previous)

    try:
        await stop.wait()
    finally:
        restore()
    _log.debug(
        "Signal received; shutting down the platform and related services (%s:%s)...",
        *context.address(),
    )


def _format_address(address: tuple[str, int]) -> str:
    host, port = address
    if ":" in host:
        host = f"[{host}]"
    return f"{host}:{port}"


@web.middleware
async def _trace_requests(request: web.Request, handler: Handler) -> web.StreamResponse:
    started = time.perf_counter()
    headers = {
        key: ("<redacted>" if key.lower() in _SENSITIVE_HEADERS else value)
        for key, value in request.headers.items()
    }
    _log.debug("started processing request %s %s headers=%s", request.method, request.path, headers)
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        _log.debug(
            "finished processing request %s %s status=%s latency=%.3fms",
            request.method,
            request.path,
            exc.status,
            (time.perf_counter() - started) * 1000,
        )
        raise
    _log.debug(
        "finished processing request %s %s status=%s latency=%.3fms",
        request.method,
        request.path,
        response.status,
        (time.perf_counter() - started) * 1000,
    )
    return response


@web.middleware
async def _compress(request: web.Request, handler: Handler) -> web.StreamResponse:
    response = await handler(request)
    if (
        isinstance(response, web.Response)
        and not isinstance(response, web.FileResponse)
        and request.headers.get("Accept-Encoding")
    ):
        response.enable_compression()
    return response


class Server:
    """Serves the configured directory over HTTP; attributes are looked up on its context."""

    def __init__(self, context: ServerContext | None = None) -> None:
        self.context = context if context is not None else ServerContext()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.context!r})"

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") or "context" not in self.__dict__:
            raise AttributeError(name)
        return getattr(self.__dict__["context"], name)

    @classmethod
    def from_config(cls, settings: Settings) -> Server:
        return cls(ServerContext.from_settings(settings))

    @classmethod
    def from_context(cls, context: ServerContext) -> Server:
        return cls(context)

    async def _serve_file(self, request: web.Request) -> web.StreamResponse:
        root = self.context.config.workdir.resolve()
        tail = request.match_info.get("tail", "")
        target = (root / tail.lstrip("/")).resolve()
        if not target.is_relative_to(root):
            raise web.HTTPNotFound()
        if target.is_dir():
            target = target / "index.html"
        if not target.is_file():
            raise web.HTTPNotFound()
        return web.FileResponse(target)

    def create_app(self) -> web.Application:
        """The application: the served directory nested at the basepath, with middleware."""
        app = web.Application(middlewares=[_trace_requests, _compress])
        app[CONTEXT_KEY] = self.context
        prefix = self.context.config.basepath.rstrip("/")
        if prefix and not prefix.startswith("/"):
            prefix = f"/{prefix}"
        if prefix:
            app.router.add_get(prefix, self._serve_file)
        app.router.add_get(prefix + "/{tail:.*}", self._serve_file)
        return app

    async def start(self, shutdown: Awaitable[Any] | None = None) -> None:
        """Bind the configured address and serve until ``shutdown`` completes.

        Without ``shutdown`` the server runs until the process is interrupted.
        """
        if shutdown is None:
            shutdown = graceful_shutdown(self.context)
        runner = web.AppRunner(self.create_app(), access_log=None)
        await runner.setup()
        try:
            host, port = self.context.address()
            site = web.TCPSite(runner, host, port)
            await site.start()
            _log.info("listening on http://%s", _format_address(self.context.address()))
            await shutdown
        finally:
            if asyncio.iscoroutine(shutdown):
                shutdown.close()
            await runner.cleanup()

    async def serve(self) -> None:
        """Run the server until the process is interrupted."""
        await self.start()

    def spawn(self) -> asyncio.Task[None]:
        """Run the server in a background task of the running event loop."""
        return asyncio.get_running_loop().create_task(self.start())


@dataclass
class BuilderConfig:
    """Configuration of the build worker."""


@dataclass
class BuilderContext:
    """Context of the build worker."""

    config: BuilderConfig = field(default_factory=BuilderConfig)


@dataclass
class Builder:
    """The build worker."""

    context: BuilderContext = field(default_factory=BuilderContext)