"""Tests for the worker message loop with a mocked orchestrator."""

import queue
from unittest.mock import AsyncMock, MagicMock

from snippetbench.core.errors import DependencyError
from snippetbench.core.orchestrator import BenchmarkOrchestrator
from snippetbench.schemas import BenchmarkResult, ProgressEvent, RunBenchmarkMessage, TestCase, encode_message
from snippetbench.worker.runtime import handle_message, serve


def run_request() -> dict:
    return encode_message(RunBenchmarkMessage(test_cases=[TestCase(id="1", name="a", code="pass")]))


def make_orchestrator(run) -> MagicMock:
    orchestrator = MagicMock(spec=BenchmarkOrchestrator)
    orchestrator.run = AsyncMock(side_effect=run)
    return orchestrator


async def test_progress_then_complete():
    async def run(request, send_progress):
        send_progress(ProgressEvent(current=0, total=1, name="Проверка тест-кейсов..."))
        return [BenchmarkResult.failure("a", "e")]

    sent = []
    await handle_message(run_request(), make_orchestrator(run), sent.append)

    assert [m["type"] for m in sent] == ["BENCHMARK_PROGRESS", "BENCHMARK_COMPLETE"]
    assert sent[0]["progress"]["total"] == 1
    assert sent[1]["results"][0]["name"] == "a"


async def test_failure_becomes_error_message():
    async def run(request, send_progress):
        raise DependencyError("Некорректные зависимости: lib")

    sent = []
    await handle_message(run_request(), make_orchestrator(run), sent.append)

    assert sent == [{"type": "BENCHMARK_ERROR", "error": "Некорректные зависимости: lib"}]


async def test_unknown_messages_are_ignored():
    orchestrator = make_orchestrator(None)
    sent = []

    await handle_message({"type": "PING"}, orchestrator, sent.append)
    await handle_message("garbage", orchestrator, sent.append)

    assert sent == []
    orchestrator.run.assert_not_called()


async def test_malformed_request_is_reported():
    sent = []
    await handle_message({"type": "RUN_BENCHMARK", "testCases": "oops"}, make_orchestrator(None), sent.append)

    assert sent[0]["type"] == "BENCHMARK_ERROR"
    assert "Некорректный запрос" in sent[0]["error"]


async def test_serve_stops_on_sentinel():
    async def run(request, send_progress):
        return []

    inbox: queue.Queue = queue.Queue()
    outbox: queue.Queue = queue.Queue()
    inbox.put(run_request())
    inbox.put(None)

    await serve(inbox, outbox, make_orchestrator(run))

    assert outbox.get_nowait()["type"] == "BENCHMARK_COMPLETE"
    assert outbox.empty()
