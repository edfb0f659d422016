"""Shared pytest fixtures for SnippetBench tests.

Factories for test cases and dependencies, fast measurement settings,
a fake resource client and a fake measurement engine.
"""

import threading
from typing import Any, Callable, Dict, List, Optional

import pytest

from snippetbench.clients.resources import ResourceFetchError
from snippetbench.config.settings import Settings
from snippetbench.schemas import (
    BenchmarkTrial,
    Dependency,
    EngineContext,
    NoopBaselines,
    NoopStats,
    RunOptions,
    RunReport,
    TestCase,
    TrialRun,
    TrialStats,
)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

FAST_MEASUREMENT = {
    "warmup_calls": 1,
    "min_samples": 3,
    "max_samples": 30,
    "min_time_ms": 0,
    "max_time_ms": 30,
    "batch_threshold_ns": 10_000,
    "max_batch_size": 64,
}


@pytest.fixture()
def fast_settings(tmp_path) -> Settings:
    """Settings with short measurement windows and a temporary shares dir."""
    return Settings(
        measurement=FAST_MEASUREMENT,
        worker={
            "start_method": "spawn",
            "terminate_grace_seconds": 1.0,
            "poll_interval_seconds": 0.02,
            "run_timeout_seconds": 0,
        },
        paths={"shares_dir": str(tmp_path / "shares"), "logs_dir": str(tmp_path / "logs")},
        logging={"level": "WARNING", "console": {"enabled": True, "level": "WARNING"}, "file": {"enabled": False}},
    )


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_test_case() -> Callable[..., TestCase]:
    counter = iter(range(1, 10_000))

    def _factory(name: str = "case", code: str = "pass", id: Optional[str] = None) -> TestCase:
        return TestCase(id=id or str(next(counter)), name=name, code=code)

    return _factory


@pytest.fixture()
def make_dependency() -> Callable[..., Dependency]:
    counter = iter(range(1, 10_000))

    def _factory(
        name: str = "helpers",
        url: str = "https://example.com/helpers.py",
        mode: str = "module",
        global_name: Optional[str] = None,
        enabled: bool = True,
        id: Optional[str] = None,
    ) -> Dependency:
        return Dependency(
            id=id or str(next(counter)),
            name=name,
            url=url,
            mode=mode,
            global_name=global_name,
            enabled=enabled,
        )

    return _factory


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeResourceClient:
    """ResourceClient stand-in serving sources from a dict."""

    def __init__(self, sources: Optional[Dict[str, str]] = None, fail_times: int = 0):
        self.sources = dict(sources or {})
        self.fail_times = fail_times
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def fetch_text(self, url: str) -> str:
        with self._lock:
            self.calls.append(url)
            if self.fail_times > 0:
                self.fail_times -= 1
                raise ResourceFetchError(f"temporary failure for {url}")
        if url not in self.sources:
            raise ResourceFetchError(f"HTTP 404: {url}")
        return self.sources[url]


@pytest.fixture()
def fake_client() -> FakeResourceClient:
    return FakeResourceClient()


def make_stats(avg: float, kind: str = "fn", p75: Optional[float] = None, p99: Optional[float] = None) -> TrialStats:
    return TrialStats(
        avg=avg,
        p75=avg if p75 is None else p75,
        p99=avg if p99 is None else p99,
        min=avg,
        max=avg,
        samples=10,
        kind=kind,
    )


def make_report(
    trials: List[tuple],
    noop_fn: float = 10.0,
    noop_iter: float = 10.0,
) -> RunReport:
    """Build a RunReport from (alias, stats-or-None) pairs."""
    return RunReport(
        benchmarks=[
            BenchmarkTrial(alias=alias, runs=[TrialRun(stats=stats)] if stats else [TrialRun(error="boom")])
            for alias, stats in trials
        ],
        context=EngineContext(noop=NoopBaselines(fn=NoopStats(avg=noop_fn), iter=NoopStats(avg=noop_iter))),
    )


class FakeEngine:
    """Measurement engine stand-in: calls each callable once, reports fixed timings."""

    def __init__(self, timings: Optional[Dict[str, float]] = None, error: Optional[Exception] = None,
                 empty: bool = False):
        self.timings = timings or {}
        self.error = error
        self.empty = empty
        self.registered: List[tuple] = []
        self.options: Optional[RunOptions] = None
        self.run_count = 0

    def register(self, name: str, fn: Callable[[], Any]) -> None:
        self.registered.append((name, fn))

    async def run_all(self, options: Optional[RunOptions] = None) -> RunReport:
        self.run_count += 1
        self.options = options
        if self.error is not None:
            raise self.error
        if self.empty:
            return make_report([])
        return make_report([
            (name, make_stats(self.timings.get(name, 1000.0)))
            for name, _ in self.registered
        ])


@pytest.fixture()
def fake_engine() -> FakeEngine:
    return FakeEngine()
