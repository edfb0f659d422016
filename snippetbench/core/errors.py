"""
Errors — иерархия исключений движка бенчмарков

Два класса ошибок по политике распространения:
- CompileError, ExecutionError: ошибка конкретного тест-кейса,
  попадает в поле error его BenchmarkResult, прогон продолжается
- DependencyError, EngineError, UnavailableError, ConcurrencyError:
  прерывают весь прогон, частичные результаты не возвращаются
"""

# Префиксы сообщений, по которым ошибки различимы после пересечения границы процесса
COMPILE_ERROR_PREFIX = "Ошибка компиляции кода: "
SETUP_COMPILE_ERROR_PREFIX = "Ошибка компиляции setup-кода: "
EXECUTION_ERROR_PREFIX = "Ошибка выполнения: "


class BenchmarkError(Exception):
    """Базовая ошибка движка бенчмарков"""


class CompileError(BenchmarkError):
    """Исходный код сниппета или setup не компилируется"""


class ExecutionError(BenchmarkError):
    """Сниппет скомпилирован, но упал при выполнении"""


class DependencyError(BenchmarkError):
    """Зависимость не прошла структурную проверку или не загрузилась"""


class EngineError(BenchmarkError):
    """Движок измерений не вернул пригодного результата"""


class UnavailableError(BenchmarkError):
    """Процесс-исполнитель не создан, упал или был остановлен"""


class RunCancelledError(UnavailableError):
    """Прогон прерван принудительной остановкой процесса-исполнителя"""


class ConcurrencyError(BenchmarkError):
    """Запрошен прогон, пока предыдущий ещё выполняется"""


__all__ = [
    "COMPILE_ERROR_PREFIX",
    "SETUP_COMPILE_ERROR_PREFIX",
    "EXECUTION_ERROR_PREFIX",
    "BenchmarkError",
    "CompileError",
    "ExecutionError",
    "DependencyError",
    "EngineError",
    "UnavailableError",
    "RunCancelledError",
    "ConcurrencyError",
]
