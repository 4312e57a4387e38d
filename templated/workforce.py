"""A small manager that runs named workers concurrently and waits for them to finish."""

from __future__ import annotations

import argparse
import asyncio
import itertools
import logging
import threading
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from .types import LogLevel

APP = "sand"
WORK_DURATION = 2.0

_log = logging.getLogger(f"{APP}.worker")

_counter = itertools.count()
_counter_lock = threading.Lock()


def _next_position() -> int:
    with _counter_lock:
        return next(_counter)


@dataclass(frozen=True, order=True)
class Message:
    """A message exchanged with workers."""

    id: int = 0


@dataclass(frozen=True, order=True)
class Worker:
    """A named unit of work with a unique id and a position in creation order."""

    id: uuid.UUID = field(default_factory=uuid.uuid4)
    name: str = ""
    position: int = 0

    @classmethod
    def create(cls, name: object) -> Worker:
        """A new worker, positioned after every worker created before it."""
        return cls(id=uuid.uuid4(), name=str(name), position=_next_position())

    def with_position(self, position: int) -> Worker:
        return replace(self, position=position)

    async def run(self, delay: float = WORK_DURATION) -> None:
        """Simulate some work taking ``delay`` seconds."""
        _log.info("run{worker=%s}: starting some process", self.name)
        await asyncio.sleep(delay)
        _log.info("run{worker=%s}: process completed", self.name)


class WorkerManager:
    """Keeps track of workers and of the tasks running them."""

    def __init__(self, delay: float = WORK_DURATION) -> None:
        self.delay = delay
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._tasks: set[asyncio.Task[None]] = set()

    def add_worker(self, name: str) -> Worker:
        """Register a new worker and start its task on the running event loop."""
        worker = Worker.create(name)
        with self._lock:
            self._workers.append(worker)
        task = asyncio.get_running_loop().create_task(worker.run(self.delay))
        self._tasks.add(task)
        return worker

    def list_workers(self) -> None:
        """Print every worker, one per line."""
        for worker in self.workers():
            print(f"Worker ({worker.position}.{worker.id}): {worker.name}")

    def workers(self) -> list[Worker]:
        """A snapshot of the registered workers."""
        with self._lock:
            return list(self._workers)

    async def wait(self) -> None:
        """Wait until every started task has finished."""
        while self._tasks:
            pending = list(self._tasks)
            await asyncio.gather(*pending)
            self._tasks.difference_update(pending)


async def _run(delay: float) -> None:
    manager = WorkerManager(delay)
    for name in ("Alice", "Bob", "Charlie"):
        manager.add_worker(name)
    manager.list_workers()
    await manager.wait()


def main(argv: Sequence[str] | None = None) -> int:
    """Start three workers, list them and wait for them to complete."""
    parser = argparse.ArgumentParser(prog=APP, description="Run a few simulated workers.")
    parser.add_argument("--delay", type=float, default=WORK_DURATION)
    args = parser.parse_args(argv)
    LogLevel.TRACE.init_tracing(APP)
    asyncio.run(_run(args.delay))
    return 0