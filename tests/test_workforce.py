import logging
import os

import pytest

from templated.workforce import Message, Worker, WorkerManager, main


def test_message_default_id():
    assert Message() == Message(id=0)
    assert Message(id=1) > Message()


def test_created_workers_are_positioned_in_order():
    first = Worker.create("Alice")
    second = Worker.create("Bob")
    assert second.position > first.position
    assert first.id != second.id
    assert first.name == "Alice"


def test_create_converts_name_to_string():
    worker = Worker.create(42)
    assert worker.name == "42"


def test_with_position_keeps_identity():
    worker = Worker.create("Alice")
    moved = worker.with_position(7)
    assert moved.position == 7
    assert moved.id == worker.id
    assert moved.name == worker.name
    assert worker.position != 7 or worker == moved


@pytest.mark.asyncio
async def test_run_logs_start_and_completion(caplog):
    caplog.set_level(logging.INFO, logger="sand.worker")
    await Worker.create("Alice").run(0)
    messages = caplog.messages
    assert any("starting some process" in m and "Alice" in m for m in messages)
    assert any("process completed" in m and "Alice" in m for m in messages)


@pytest.mark.asyncio
async def test_manager_tracks_workers_in_order():
    manager = WorkerManager(delay=0)
    added = [manager.add_worker(name) for name in ("Alice", "Bob", "Charlie")]
    assert manager.workers() == added
    await manager.wait()
    assert [worker.name for worker in manager.workers()] == ["Alice", "Bob", "Charlie"]


@pytest.mark.asyncio
async def test_workers_returns_a_snapshot():
    manager = WorkerManager(delay=0)
    manager.add_worker("Alice")
    snapshot = manager.workers()
    snapshot.clear()
    assert len(manager.workers()) == 1
    await manager.wait()


@pytest.mark.asyncio
async def test_list_workers_prints_each_worker(capsys):
    manager = WorkerManager(delay=0)
    alice = manager.add_worker("Alice")
    bob = manager.add_worker("Bob")
    manager.list_workers()
    await manager.wait()
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        f"Worker ({alice.position}.{alice.id}): Alice",
        f"Worker ({bob.position}.{bob.id}): Bob",
    ]


@pytest.mark.asyncio
async def test_wait_completes_all_tasks(caplog):
    caplog.set_level(logging.INFO, logger="sand.worker")
    manager = WorkerManager(delay=0)
    manager.add_worker("Alice")
    manager.add_worker("Bob")
    await manager.wait()
    completed = [m for m in caplog.messages if "process completed" in m]
    assert len(completed) == 2


def test_add_worker_requires_running_loop():
    manager = WorkerManager(delay=0)
    with pytest.raises(RuntimeError):
        manager.add_worker("Alice")


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    named = {name: logging.getLogger(name).level for name in ("sand", "aiohttp")}
    saved_filter = os.environ.pop("APP_LOG", None)
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, value in named.items():
        logging.getLogger(name).setLevel(value)
    if saved_filter is not None:
        os.environ["APP_LOG"] = saved_filter


def test_main_lists_three_workers(restore_logging, capsys):
    assert main(["--delay", "0"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert [line.rsplit(": ", 1)[1] for line in lines] == ["Alice", "Bob", "Charlie"]
    assert all(line.startswith("Worker (") for line in lines)