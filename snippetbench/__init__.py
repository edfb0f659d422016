# SnippetBench
# Движок сравнительных микробенчмарков для сниппетов Python

from .schemas import (
    TestCase,
    Dependency,
    BenchmarkResult,
    ProgressEvent,
    ValidationResult,
    DependencyValidationResult,
    ShareSnapshot,
)
from .core import (
    BenchmarkError,
    BenchmarkOrchestrator,
    DependencyLoader,
    Workspace,
    ShareService,
    calculate_relative_performance,
    get_performance_ranking,
)
from .worker import RunManager, get_run_manager, terminate_run_manager

__all__ = [
    # Schemas
    "TestCase",
    "Dependency",
    "BenchmarkResult",
    "ProgressEvent",
    "ValidationResult",
    "DependencyValidationResult",
    "ShareSnapshot",
    # Core
    "BenchmarkError",
    "BenchmarkOrchestrator",
    "DependencyLoader",
    "Workspace",
    "ShareService",
    "calculate_relative_performance",
    "get_performance_ranking",
    # Worker
    "RunManager",
    "get_run_manager",
    "terminate_run_manager",
]
