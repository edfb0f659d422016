"""Tests for the default TimerEngine."""

import io
import time

from rich.console import Console

from conftest import FAST_MEASUREMENT
from snippetbench.config.settings import MeasurementConfig
from snippetbench.core.sandbox import compile_snippet
from snippetbench.engine import TimerEngine
from snippetbench.schemas import RunOptions

QUIET = RunOptions(colors=False, print_summary=False)


def make_engine(**overrides) -> TimerEngine:
    return TimerEngine(MeasurementConfig(**{**FAST_MEASUREMENT, **overrides}))


async def test_reports_registered_callables_in_order():
    engine = make_engine()
    engine.register("first", lambda: sum(range(10)))
    engine.register("second", lambda: None)

    report = await engine.run_all(QUIET)

    assert [t.alias for t in report.benchmarks] == ["first", "second"]
    for trial in report.benchmarks:
        stats = trial.first_stats
        assert stats is not None
        assert stats.avg > 0
        assert stats.min <= stats.avg <= stats.max
        assert stats.p75 <= stats.p99


async def test_fast_calls_use_batches_and_slow_calls_are_sampled_singly():
    engine = make_engine(batch_threshold_ns=10_000, warmup_calls=3)
    engine.register("fast", lambda: None)
    engine.register("slow", lambda: time.sleep(0.0005))

    report = await engine.run_all(QUIET)

    kinds = {t.alias: t.first_stats.kind for t in report.benchmarks}
    assert kinds == {"fast": "iter", "slow": "fn"}


async def test_sample_count_is_bounded():
    engine = make_engine(min_samples=2, max_samples=5, min_time_ms=10_000, max_time_ms=10_000)
    engine.register("capped", lambda: None)

    report = await engine.run_all(QUIET)

    assert report.benchmarks[0].first_stats.samples == 5


async def test_async_callables_are_awaited():
    calls = []

    async def snippet():
        calls.append(1)

    engine = make_engine()
    engine.register("async", snippet)

    report = await engine.run_all(QUIET)

    assert report.benchmarks[0].first_stats is not None
    assert len(calls) > 1


async def test_failing_callable_is_reported_per_benchmark():
    engine = make_engine()
    engine.register("broken", compile_snippet("raise RuntimeError('x')", None))
    engine.register("fine", lambda: None)

    report = await engine.run_all(QUIET)

    broken, fine = report.benchmarks
    assert broken.first_stats is None
    assert "RuntimeError" in broken.runs[0].error
    assert fine.first_stats is not None


async def test_noop_baselines_for_both_kinds():
    engine = make_engine()
    engine.register("x", lambda: None)

    report = await engine.run_all(QUIET)

    assert report.context.noop.fn.avg >= 0
    assert report.context.noop.iter.avg >= 0


async def test_clear_removes_registrations():
    engine = make_engine()
    engine.register("x", lambda: None)
    engine.clear()

    report = await engine.run_all(QUIET)

    assert engine.registered == []
    assert report.benchmarks == []


async def test_summary_table_is_printed():
    buffer = io.StringIO()
    engine = TimerEngine(MeasurementConfig(**FAST_MEASUREMENT), console=Console(file=buffer, width=120))
    engine.register("summed", lambda: sum(range(5)))

    await engine.run_all(RunOptions(colors=False, print_summary=True))

    output = buffer.getvalue()
    assert "summed" in output
    assert "noop" in output
