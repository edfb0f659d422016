"""
Engine — движок статистических измерений

Экспортирует:
- MeasurementEngine: контракт движка (register + run_all)
- TimerEngine: реализация по умолчанию (perf_counter_ns + numpy)
"""

from .measurement import MeasurementEngine, TimerEngine

__all__ = ["MeasurementEngine", "TimerEngine"]
