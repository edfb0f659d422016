"""
Result Post-Processor — от сырого отчёта движка к публичным результатам

Функции:
- normalize_results: нс → мкс, ops, признак optimized_out, слияние с ошибками
- calculate_relative_performance: процент от самого быстрого результата
- get_performance_ranking: успешные результаты по убыванию ops
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from ..schemas import BenchmarkResult, RunReport, TestCase, TrialStats
from .errors import EngineError


logger = logging.getLogger(__name__)

DEFAULT_OPTIMIZED_OUT_FACTOR = 1.42

NO_STATS_ERROR = "Движок не вернул статистику"
NO_RESULT_ERROR = "Движок не вернул результат"


def _to_result(name: str, stats: TrialStats, noop_avg: float, factor: float) -> BenchmarkResult:
    """Перевести статистику одного измерения в BenchmarkResult"""
    if stats.avg <= 0:
        raise EngineError(f"Некорректное среднее время для '{name}': {stats.avg}")

    avg_us = stats.avg / 1000
    return BenchmarkResult(
        name=name,
        avg=avg_us,
        p75=stats.p75 / 1000,
        p99=stats.p99 / 1000,
        ops=round(1_000_000 / avg_us),
        optimized_out=stats.avg < factor * noop_avg,
    )


def normalize_results(
    report: RunReport,
    test_cases: Sequence[TestCase],
    error_results: Sequence[BenchmarkResult] = (),
    optimized_out_factor: float = DEFAULT_OPTIMIZED_OUT_FACTOR,
) -> List[BenchmarkResult]:
    """
    Собрать итоговый список результатов

    Правила слияния:
    - ошибка валидации никогда не перезаписывается измерением
    - повторное измерение с тем же именем заменяет предыдущее
    - порядок — первое появление имени среди тест-кейсов
    - по одному результату на имя

    Baseline для optimized_out выбирается для каждого тест-кейса
    по виду его первого измерения (fn или iter).

    Args:
        report: Отчёт движка
        test_cases: Тест-кейсы прогона (задают порядок и набор имён)
        error_results: Результаты с ошибками стадии проверки
        optimized_out_factor: Порог относительно пустого вызова

    Returns:
        Список BenchmarkResult

    Raises:
        EngineError: Пустой отчёт или неположительное среднее время
    """
    if not report.benchmarks:
        raise EngineError("Движок измерений вернул пустой отчёт")

    errors: Dict[str, BenchmarkResult] = {}
    for result in error_results:
        errors.setdefault(result.name, result)

    measured: Dict[str, BenchmarkResult] = {}
    for trial in report.benchmarks:
        if trial.alias in errors:
            continue

        stats = trial.first_stats
        if stats is None:
            run_error: Optional[str] = trial.runs[0].error if trial.runs else None
            measured[trial.alias] = BenchmarkResult.failure(trial.alias, run_error or NO_STATS_ERROR)
            continue

        noop_avg = report.context.noop.for_kind(stats.kind).avg
        measured[trial.alias] = _to_result(trial.alias, stats, noop_avg, optimized_out_factor)

    return collect_results(test_cases, errors.values(), measured)


def collect_results(
    test_cases: Sequence[TestCase],
    error_results: Iterable[BenchmarkResult],
    measured: Optional[Dict[str, BenchmarkResult]] = None,
) -> List[BenchmarkResult]:
    """
    По одному результату на имя тест-кейса в порядке первого появления

    Ошибка имеет приоритет над измерением. Имя без результата получает
    результат с ошибкой NO_RESULT_ERROR.
    """
    errors: Dict[str, BenchmarkResult] = {}
    for result in error_results:
        errors.setdefault(result.name, result)
    measured = measured or {}

    results: List[BenchmarkResult] = []
    seen = set()
    for test_case in test_cases:
        if test_case.name in seen:
            continue
        seen.add(test_case.name)

        result = errors.get(test_case.name) or measured.get(test_case.name)
        if result is None:
            logger.warning(f"Нет результата для '{test_case.name}'")
            result = BenchmarkResult.failure(test_case.name, NO_RESULT_ERROR)
        results.append(result)

    return results


def calculate_relative_performance(results: Sequence[BenchmarkResult]) -> List[BenchmarkResult]:
    """
    Рассчитать относительную производительность (самый быстрый = 100)

    Учитываются только результаты без ошибки и с ops > 0;
    у остальных relative_performance = None.
    """
    valid = [r for r in results if not r.is_error and r.ops]
    if not valid:
        return [r.model_copy(update={"relative_performance": None}) for r in results]

    max_ops = max(r.ops for r in valid)

    updated = []
    for result in results:
        relative = None
        if not result.is_error and result.ops:
            relative = result.ops / max_ops * 100
        updated.append(result.model_copy(update={"relative_performance": relative}))
    return updated


def get_performance_ranking(results: Sequence[BenchmarkResult]) -> List[BenchmarkResult]:
    """Результаты без ошибок по убыванию ops"""
    return sorted(
        (r for r in results if not r.is_error),
        key=lambda r: r.ops or 0,
        reverse=True,
    )
