"""
Core — ядро движка бенчмарков

Основные компоненты:
- BenchmarkOrchestrator: Конечный автомат прогона (внутри исполнителя)
- DependencyLoader: Загрузка зависимостей в общую область видимости
- sandbox: Компиляция сниппетов и setup-кода
- validator: Проверка синтаксиса, пробный запуск, проверка зависимостей
- postprocess: Нормализация, относительная производительность, рейтинг
- Workspace: Состояние редактирования тест-кейсов
- ShareService: Публикация снапшотов по ссылке
"""

from .errors import (
    BenchmarkError,
    CompileError,
    ExecutionError,
    DependencyError,
    EngineError,
    UnavailableError,
    RunCancelledError,
    ConcurrencyError,
)
from .sandbox import compile_snippet, compile_setup, evaluate_setup, do_not_optimize
from .validator import (
    validate_syntax,
    validate_setup_syntax,
    validate_with_dry_run,
    validate_dependencies,
)
from .dependency_loader import DependencyLoader
from .postprocess import (
    normalize_results,
    calculate_relative_performance,
    get_performance_ranking,
)
from .orchestrator import BenchmarkOrchestrator, RunStage, STAGE_LABELS
from .workspace import Workspace
from .share import ShareService, KeyValueStore, InMemoryStore, JsonFileStore

__all__ = [
    # Ошибки
    "BenchmarkError",
    "CompileError",
    "ExecutionError",
    "DependencyError",
    "EngineError",
    "UnavailableError",
    "RunCancelledError",
    "ConcurrencyError",
    # Sandbox
    "compile_snippet",
    "compile_setup",
    "evaluate_setup",
    "do_not_optimize",
    # Validator
    "validate_syntax",
    "validate_setup_syntax",
    "validate_with_dry_run",
    "validate_dependencies",
    # Зависимости
    "DependencyLoader",
    # Post-processing
    "normalize_results",
    "calculate_relative_performance",
    "get_performance_ranking",
    # Оркестратор
    "BenchmarkOrchestrator",
    "RunStage",
    "STAGE_LABELS",
    # Рабочее пространство и публикация
    "Workspace",
    "ShareService",
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
]
