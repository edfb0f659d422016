"""
Data Schemas - схемы данных движка бенчмарков

Экспортирует все схемы из подмодулей:
- cases: TestCase, Dependency
- results: BenchmarkResult, ProgressEvent, ValidationResult, DependencyValidationResult
- engine: RunOptions, RunReport, TrialStats, ...
- messages: RunBenchmarkMessage, ProgressMessage, CompleteMessage, ErrorMessage
- share: ShareSnapshot, EXPIRY_OPTIONS
"""

from .cases import (
    TestCase,
    Dependency,
    DependencyMode,
)

from .results import (
    BenchmarkResult,
    ProgressEvent,
    ValidationResult,
    DependencyValidationResult,
)

from .engine import (
    MeasurementKind,
    RunOptions,
    TrialStats,
    TrialRun,
    BenchmarkTrial,
    NoopStats,
    NoopBaselines,
    EngineContext,
    RunReport,
)

from .messages import (
    RunBenchmarkMessage,
    ProgressMessage,
    CompleteMessage,
    ErrorMessage,
    encode_message,
    parse_worker_response,
    parse_run_request,
)

from .share import (
    ShareSnapshot,
    ExpiryOption,
    EXPIRY_OPTIONS,
)

__all__ = [
    # Cases
    "TestCase",
    "Dependency",
    "DependencyMode",
    # Results
    "BenchmarkResult",
    "ProgressEvent",
    "ValidationResult",
    "DependencyValidationResult",
    # Engine
    "MeasurementKind",
    "RunOptions",
    "TrialStats",
    "TrialRun",
    "BenchmarkTrial",
    "NoopStats",
    "NoopBaselines",
    "EngineContext",
    "RunReport",
    # Messages
    "RunBenchmarkMessage",
    "ProgressMessage",
    "CompleteMessage",
    "ErrorMessage",
    "encode_message",
    "parse_worker_response",
    "parse_run_request",
    # Share
    "ShareSnapshot",
    "ExpiryOption",
    "EXPIRY_OPTIONS",
]
