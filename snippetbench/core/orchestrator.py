"""
BenchmarkOrchestrator — конечный автомат прогона внутри процесса-исполнителя

Стадии:
    IDLE → LOADING_DEPENDENCIES → VALIDATING → PREPARING → MEASURING
         → POST_PROCESSING → COMPLETED
    (из любой стадии — FAILED, исключение BenchmarkError)

При входе в каждую стадию отправляется ровно одно событие прогресса.
current — количество тест-кейсов с окончательным результатом:
ошибки проверки известны после VALIDATING, остальные — только в COMPLETED.

Использование:
    orchestrator = BenchmarkOrchestrator.from_settings(get_settings())
    results = await orchestrator.run(request, send_progress=print)
"""

import inspect
import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Union

from ..config.settings import Settings, get_settings
from ..engine import MeasurementEngine, TimerEngine
from ..schemas import BenchmarkResult, ProgressEvent, RunBenchmarkMessage, RunOptions
from .dependency_loader import DependencyLoader
from .errors import CompileError, DependencyError, EngineError, ExecutionError
from .postprocess import collect_results, normalize_results
from .sandbox import compile_snippet, evaluate_setup
from .validator import validate_dependencies, validate_with_dry_run


logger = logging.getLogger(__name__)


class RunStage(str, Enum):
    """Стадии прогона"""
    IDLE = "idle"
    LOADING_DEPENDENCIES = "loading_dependencies"
    VALIDATING = "validating"
    PREPARING = "preparing"
    MEASURING = "measuring"
    POST_PROCESSING = "post_processing"
    COMPLETED = "completed"
    FAILED = "failed"


STAGE_LABELS: Dict[RunStage, str] = {
    RunStage.LOADING_DEPENDENCIES: "Загрузка зависимостей...",
    RunStage.VALIDATING: "Проверка тест-кейсов...",
    RunStage.PREPARING: "Подготовка бенчмарка...",
    RunStage.MEASURING: "Выполнение бенчмарка, подождите...",
    RunStage.POST_PROCESSING: "Обработка результатов...",
    RunStage.COMPLETED: "Бенчмарк завершён",
}

ProgressSender = Callable[[ProgressEvent], Union[None, Awaitable[None]]]

# Фабрика движка: async_mode → новый движок без регистраций
EngineFactory = Callable[[bool], MeasurementEngine]


def default_engine_factory(settings: Settings) -> EngineFactory:
    """
    Фабрика TimerEngine, baseline которого — пустой сниппет того же режима

    Пустой сниппет проходит через тот же путь вызова, что и настоящие,
    поэтому optimized_out сравнивает только стоимость тела.
    """
    def factory(async_mode: bool) -> MeasurementEngine:
        noop = compile_snippet("", None, async_mode, filename="<noop>")
        return TimerEngine.from_settings(settings, noop=noop)

    return factory


class BenchmarkOrchestrator:
    """
    Оркестратор одного прогона

    Атрибуты:
        loader: Загрузчик зависимостей (его scope виден сниппетам)
        engine_factory: Фабрика движка, вызывается один раз на прогон
        stage: Текущая стадия
    """

    def __init__(
        self,
        loader: DependencyLoader,
        engine_factory: Optional[EngineFactory] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or get_settings()
        self.loader = loader
        self.engine_factory = engine_factory or default_engine_factory(self._settings)
        self.stage = RunStage.IDLE

    @classmethod
    def from_settings(cls, settings: Settings) -> "BenchmarkOrchestrator":
        """Создать оркестратор с загрузчиком и движком из Settings"""
        return cls(DependencyLoader.from_settings(settings), settings=settings)

    async def run(
        self,
        request: RunBenchmarkMessage,
        send_progress: Optional[ProgressSender] = None,
    ) -> List[BenchmarkResult]:
        """
        Выполнить прогон

        Args:
            request: Тест-кейсы, setup-код, режим и зависимости
            send_progress: Получатель событий прогресса (sync или async)

        Returns:
            По одному BenchmarkResult на уникальное имя тест-кейса

        Raises:
            DependencyError: Зависимости некорректны или не загрузились
            EngineError: Движок упал или вернул пустой отчёт
        """
        total = len(request.test_cases)

        async def enter(stage: RunStage, current: int) -> None:
            self.stage = stage
            logger.debug(f"Стадия {stage.value} ({current}/{total})")
            if send_progress is None:
                return
            sent = send_progress(ProgressEvent(current=current, total=total, name=STAGE_LABELS[stage]))
            if inspect.isawaitable(sent):
                await sent

        self.stage = RunStage.IDLE
        try:
            return await self._run(request, enter)
        except Exception:
            self.stage = RunStage.FAILED
            raise

    async def _run(self, request: RunBenchmarkMessage, enter) -> List[BenchmarkResult]:
        total = len(request.test_cases)
        is_async = request.async_mode
        scope = self.loader.scope

        self.loader.reset()

        # ---------------------------------------------------------------------
        # LOADING_DEPENDENCIES
        # ---------------------------------------------------------------------
        enabled = [d for d in request.dependencies if d.enabled]
        if enabled:
            await enter(RunStage.LOADING_DEPENDENCIES, 0)

            check = validate_dependencies(enabled, self._settings.dependencies.allowed_schemes)
            if not check.is_valid:
                raise DependencyError(f"Некорректные зависимости: {'; '.join(check.errors)}")

            await self.loader.load_dependencies(enabled)

        # ---------------------------------------------------------------------
        # VALIDATING
        # ---------------------------------------------------------------------
        await enter(RunStage.VALIDATING, 0)

        errors: List[BenchmarkResult] = []
        survivors = []
        for test_case in request.test_cases:
            check = await validate_with_dry_run(request.setup_code, test_case.code, is_async, scope)
            if check.is_valid:
                survivors.append(test_case)
            else:
                logger.info(f"Тест-кейс '{test_case.name}' не прошёл проверку: {check.error}")
                errors.append(BenchmarkResult.failure(test_case.name, check.error or ""))

        if not survivors:
            await enter(RunStage.COMPLETED, total)
            return collect_results(request.test_cases, errors)

        # ---------------------------------------------------------------------
        # PREPARING
        # ---------------------------------------------------------------------
        await enter(RunStage.PREPARING, len(errors))

        engine = self.engine_factory(is_async)
        registered = 0
        for test_case in survivors:
            try:
                # GLOBAL свой у каждого сниппета
                global_value = evaluate_setup(request.setup_code, scope)
                snippet = compile_snippet(
                    test_case.code,
                    global_value,
                    is_async,
                    scope=scope,
                    filename=f"<{test_case.name}>",
                )
            except (CompileError, ExecutionError) as e:
                errors.append(BenchmarkResult.failure(test_case.name, str(e)))
                continue
            engine.register(test_case.name, snippet)
            registered += 1

        if not registered:
            await enter(RunStage.COMPLETED, total)
            return collect_results(request.test_cases, errors)

        # ---------------------------------------------------------------------
        # MEASURING
        # ---------------------------------------------------------------------
        await enter(RunStage.MEASURING, len(errors))

        try:
            report = await engine.run_all(RunOptions(colors=False, print_summary=False))
        except Exception as e:
            raise EngineError(f"Ошибка движка измерений: {e}") from e

        if not report.benchmarks:
            raise EngineError("Движок измерений вернул пустой отчёт")

        # ---------------------------------------------------------------------
        # POST_PROCESSING
        # ---------------------------------------------------------------------
        await enter(RunStage.POST_PROCESSING, len(errors))

        results = normalize_results(
            report,
            request.test_cases,
            errors,
            self._settings.measurement.optimized_out_factor,
        )

        await enter(RunStage.COMPLETED, total)
        logger.info(
            f"Прогон завершён: {len(results)} результатов, "
            f"ошибок {sum(1 for r in results if r.is_error)}"
        )
        return results
