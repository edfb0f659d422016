"""Tests for RunManager with a real worker process."""

import asyncio
import multiprocessing.context
import threading

import pytest

from snippetbench.core.errors import (
    BenchmarkError,
    ConcurrencyError,
    RunCancelledError,
    UnavailableError,
)
from snippetbench.worker import get_run_manager, terminate_run_manager
from snippetbench.worker.manager import RunManager


RUN_TIMEOUT = 30

SLOW_CODE = "import time\ntime.sleep(0.05)"


@pytest.fixture()
def manager(fast_settings):
    manager = RunManager(fast_settings)
    try:
        yield manager
    finally:
        manager.terminate()


async def test_run_reports_progress_and_results(manager, make_test_case):
    events = []
    results = await asyncio.wait_for(
        manager.run(
            [make_test_case(name="sum", code="do_not_optimize(sum(GLOBAL))"),
             make_test_case(name="broken", code="1 / 0")],
            setup_code="return list(range(100))",
            on_progress=events.append,
        ),
        RUN_TIMEOUT,
    )

    assert [r.name for r in results] == ["sum", "broken"]
    assert results[0].ops > 0
    assert results[1].error.startswith("Ошибка выполнения: ")
    assert events[-1].current == events[-1].total == 2
    assert [e.current for e in events] == sorted(e.current for e in events)
    assert not manager.is_running


async def test_async_progress_callback(manager, make_test_case):
    received = []

    async def on_progress(event):
        received.append(event.name)

    await asyncio.wait_for(manager.run([make_test_case()], on_progress=on_progress), RUN_TIMEOUT)
    await asyncio.sleep(0)

    assert received


async def test_second_concurrent_run_is_refused(manager, make_test_case):
    first = asyncio.ensure_future(manager.run([make_test_case(code=SLOW_CODE)]))
    await asyncio.sleep(0)

    with pytest.raises(ConcurrencyError):
        await manager.run([make_test_case()])

    await asyncio.wait_for(first, RUN_TIMEOUT)


async def test_run_error_surfaces_as_benchmark_error(manager, make_test_case, make_dependency):
    with pytest.raises(BenchmarkError) as exc_info:
        await asyncio.wait_for(
            manager.run(
                [make_test_case()],
                dependencies=[make_dependency(name="lib", mode="global-script", global_name=None)],
            ),
            RUN_TIMEOUT,
        )

    assert "global_name" in str(exc_info.value)
    assert manager.is_available


async def test_terminate_mid_run_then_restart(manager, make_test_case):
    started = asyncio.Event()
    task = asyncio.ensure_future(
        manager.run([make_test_case(code=SLOW_CODE)], on_progress=lambda event: started.set())
    )

    await asyncio.wait_for(started.wait(), RUN_TIMEOUT)
    manager.terminate()

    with pytest.raises(RunCancelledError):
        await asyncio.wait_for(task, RUN_TIMEOUT)
    assert not manager.is_available
    with pytest.raises(UnavailableError):
        await manager.run([make_test_case()])

    manager.restart()
    results = await asyncio.wait_for(manager.run([make_test_case()]), RUN_TIMEOUT)
    assert results[0].error is None


async def test_worker_crash_is_unavailable(manager, make_test_case):
    with pytest.raises(UnavailableError):
        await asyncio.wait_for(
            manager.run([make_test_case(code="import os\nos._exit(1)")]),
            RUN_TIMEOUT,
        )

    assert not manager.is_available


async def test_timeout_cancels_run(fast_settings, make_test_case):
    fast_settings.worker.run_timeout_seconds = 0.5
    manager = RunManager(fast_settings)
    try:
        with pytest.raises(RunCancelledError):
            await manager.run([make_test_case(code="import time\ntime.sleep(5)")])
        assert not manager.is_available
    finally:
        manager.terminate()


def test_singleton_helpers(fast_settings):
    try:
        first = get_run_manager(fast_settings)
        assert get_run_manager() is first
        assert first.is_available
    finally:
        terminate_run_manager()

    assert not first.is_available


def test_failed_start_leaves_manager_unavailable(fast_settings, make_test_case, monkeypatch):
    def refuse_start(self):
        raise OSError("cannot spawn")

    monkeypatch.setattr(multiprocessing.context.SpawnProcess, "start", refuse_start)

    manager = RunManager(fast_settings)
    assert not manager.is_available

    with pytest.raises(UnavailableError):
        asyncio.run(manager.run([make_test_case()]))

    monkeypatch.undo()
    try:
        manager.restart()
        assert manager.is_available
    finally:
        manager.terminate()


async def test_timeout_terminates_off_the_event_loop(fast_settings, make_test_case, monkeypatch):
    fast_settings.worker.run_timeout_seconds = 0.5
    manager = RunManager(fast_settings)
    terminate = manager.terminate
    threads = []

    def recording_terminate():
        threads.append(threading.current_thread())
        terminate()

    monkeypatch.setattr(manager, "terminate", recording_terminate)
    try:
        with pytest.raises(RunCancelledError):
            await manager.run([make_test_case(code="import time\ntime.sleep(5)")])
        assert threads and threads[0] is not threading.current_thread()
    finally:
        terminate()
