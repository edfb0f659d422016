"""
Measurement Engine — статистические измерения зарегистрированных сниппетов

Контракт движка (MeasurementEngine):
    engine.register("name", fn)
    report = await engine.run_all(RunOptions(colors=False, print_summary=False))

TimerEngine — реализация по умолчанию:
1. Прогрев: warmup_calls вызовов, минимальное время вызова = оценка
2. Выбор вида измерения:
   - fn: каждый сэмпл — один вызов (медленные вызовы)
   - iter: каждый сэмпл — среднее по пачке вызовов (вызовы быстрее порога)
3. Сбор сэмплов в пределах min/max samples и min/max time
4. Статистика через numpy (avg, p75, p99, min, max)
5. Baseline пустого вызова для обоих видов измерения

Все времена в наносекундах.
"""

import asyncio
import inspect
import logging
from time import perf_counter_ns
from typing import Any, Callable, List, Optional, Protocol, Tuple

import numpy as np
from rich.console import Console
from rich.table import Table

from ..config.settings import MeasurementConfig
from ..schemas import (
    BenchmarkTrial,
    EngineContext,
    MeasurementKind,
    NoopBaselines,
    NoopStats,
    RunOptions,
    RunReport,
    TrialRun,
    TrialStats,
)


logger = logging.getLogger(__name__)


class MeasurementEngine(Protocol):
    """Контракт внешнего движка измерений"""

    def register(self, name: str, fn: Callable[[], Any]) -> None:
        ...

    async def run_all(self, options: Optional[RunOptions] = None) -> RunReport:
        ...


def _noop() -> None:
    pass


# =============================================================================
# Реализация по умолчанию
# =============================================================================

class TimerEngine:
    """
    Движок на perf_counter_ns + numpy

    Baseline пустого вызова измеряется через тот же путь, что и сниппеты.
    Передайте в noop пустой сниппет, скомпилированный в том же режиме,
    чтобы baseline включал стоимость самого вызова.

    Example:
        engine = TimerEngine(settings.measurement)
        engine.register("sum", lambda: sum(range(100)))
        report = await engine.run_all()
    """

    def __init__(
        self,
        config: Optional[MeasurementConfig] = None,
        noop: Optional[Callable[[], Any]] = None,
        console: Optional[Console] = None,
    ):
        """
        Args:
            config: Параметры измерений (по умолчанию MeasurementConfig())
            noop: Пустой вызов для baseline
            console: Консоль для итоговой таблицы
        """
        self.config = config or MeasurementConfig()
        self.noop = noop or _noop
        self.console = console
        self._benchmarks: List[Tuple[str, Callable[[], Any]]] = []

    @classmethod
    def from_settings(cls, settings, noop: Optional[Callable[[], Any]] = None) -> "TimerEngine":
        """Создать движок из Settings"""
        return cls(config=settings.measurement, noop=noop)

    def register(self, name: str, fn: Callable[[], Any]) -> None:
        """Зарегистрировать вызываемый объект под именем (имена могут повторяться)"""
        self._benchmarks.append((name, fn))

    def clear(self) -> None:
        """Удалить все регистрации"""
        self._benchmarks.clear()

    @property
    def registered(self) -> List[str]:
        return [name for name, _ in self._benchmarks]

    async def run_all(self, options: Optional[RunOptions] = None) -> RunReport:
        """
        Измерить все зарегистрированные вызовы по порядку

        Ошибка одного вызова попадает в его TrialRun.error,
        остальные продолжают измеряться.

        Args:
            options: Параметры вывода

        Returns:
            RunReport с результатами и baseline пустого вызова
        """
        options = options or RunOptions()
        trials: List[BenchmarkTrial] = []

        for name, fn in self._benchmarks:
            try:
                stats = await self._measure(fn)
                run = TrialRun(stats=stats)
                logger.debug(
                    f"{name}: avg={stats.avg:.1f}нс kind={stats.kind} samples={stats.samples}"
                )
            except Exception as e:
                logger.warning(f"{name}: ошибка при измерении: {e}")
                run = TrialRun(error=str(e))
            trials.append(BenchmarkTrial(alias=name, runs=[run]))
            # Отдаём управление event loop между бенчмарками
            await asyncio.sleep(0)

        noop = NoopBaselines(
            fn=NoopStats(avg=(await self._measure(self.noop, kind="fn")).avg),
            iter=NoopStats(avg=(await self._measure(self.noop, kind="iter")).avg),
        )

        report = RunReport(benchmarks=trials, context=EngineContext(noop=noop))

        if options.print_summary:
            self._print_summary(report, options.colors)

        return report

    # =========================================================================
    # Измерение
    # =========================================================================

    async def _measure(self, fn: Callable[[], Any], kind: Optional[MeasurementKind] = None) -> TrialStats:
        """Прогрев, выбор вида измерения и сбор сэмплов"""
        cfg = self.config
        is_async = inspect.iscoroutinefunction(fn)

        probe = min([await self._time_batch(fn, is_async, 1) for _ in range(cfg.warmup_calls)])

        if kind is None:
            kind = "fn" if probe >= cfg.batch_threshold_ns else "iter"

        batch = 1
        if kind == "iter":
            batch = max(1, min(cfg.max_batch_size, cfg.batch_threshold_ns // max(probe, 1)))

        min_time_ns = cfg.min_time_ms * 1_000_000
        max_time_ns = cfg.max_time_ms * 1_000_000

        samples: List[float] = []
        started = perf_counter_ns()
        while True:
            samples.append(await self._time_batch(fn, is_async, batch) / batch)
            elapsed = perf_counter_ns() - started

            if len(samples) >= cfg.max_samples or elapsed >= max_time_ns:
                break
            if len(samples) >= cfg.min_samples and elapsed >= min_time_ns:
                break

        return self._stats(samples, kind)

    @staticmethod
    async def _time_batch(fn: Callable[[], Any], is_async: bool, batch: int) -> int:
        """Время batch последовательных вызовов"""
        if is_async:
            start = perf_counter_ns()
            for _ in range(batch):
                await fn()
            return perf_counter_ns() - start

        start = perf_counter_ns()
        for _ in range(batch):
            fn()
        return perf_counter_ns() - start

    @staticmethod
    def _stats(samples: List[float], kind: MeasurementKind) -> TrialStats:
        """Статистика по сэмплам"""
        arr = np.asarray(samples, dtype=np.float64)
        return TrialStats(
            avg=float(arr.mean()),
            p75=float(np.percentile(arr, 75)),
            p99=float(np.percentile(arr, 99)),
            min=float(arr.min()),
            max=float(arr.max()),
            samples=int(arr.size),
            kind=kind,
        )

    # =========================================================================
    # Вывод
    # =========================================================================

    def _print_summary(self, report: RunReport, colors: bool) -> None:
        """Вывести итоговую таблицу измерений"""
        console = self.console or Console(stderr=True, no_color=not colors)

        table = Table(title="Измерения (нс)")
        table.add_column("alias")
        table.add_column("kind")
        table.add_column("avg", justify="right")
        table.add_column("p75", justify="right")
        table.add_column("p99", justify="right")
        table.add_column("samples", justify="right")

        for trial in report.benchmarks:
            stats = trial.first_stats
            if stats is None:
                table.add_row(trial.alias, "-", "-", "-", "-", "-")
                continue
            table.add_row(
                trial.alias,
                stats.kind,
                f"{stats.avg:.1f}",
                f"{stats.p75:.1f}",
                f"{stats.p99:.1f}",
                str(stats.samples),
            )

        console.print(table)
        console.print(
            f"noop: fn={report.context.noop.fn.avg:.1f}нс iter={report.context.noop.iter.avg:.1f}нс"
        )
