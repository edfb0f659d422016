"""
Engine Schemas — контракт движка измерений

Форма отчёта, которую возвращает run_all():
    {
      "benchmarks": [{"alias": ..., "runs": [{"stats": {avg, p75, p99, kind, ...}}]}],
      "context": {"noop": {"fn": {"avg": ...}, "iter": {"avg": ...}}}
    }

Все времена — в наносекундах.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


MeasurementKind = Literal["fn", "iter"]


class RunOptions(BaseModel):
    """Параметры запуска движка"""
    colors: bool = True
    print_summary: bool = True


class TrialStats(BaseModel):
    """Статистика одного измерения"""
    avg: float = Field(..., ge=0.0)
    p75: float = Field(..., ge=0.0)
    p99: float = Field(..., ge=0.0)
    min: float = Field(default=0.0, ge=0.0)
    max: float = Field(default=0.0, ge=0.0)
    samples: int = Field(default=0, ge=0)
    kind: MeasurementKind = "fn"


class TrialRun(BaseModel):
    """Один запуск бенчмарка"""
    stats: Optional[TrialStats] = None
    error: Optional[str] = None


class BenchmarkTrial(BaseModel):
    """Все запуски одного зарегистрированного бенчмарка"""
    alias: str
    runs: List[TrialRun] = Field(default_factory=list)

    @property
    def first_stats(self) -> Optional[TrialStats]:
        """Статистика первого запуска (по её виду выбирается baseline)"""
        if not self.runs:
            return None
        return self.runs[0].stats


class NoopStats(BaseModel):
    """Среднее время пустого вызова"""
    avg: float = Field(..., ge=0.0)


class NoopBaselines(BaseModel):
    """Baseline пустого вызова для каждого вида измерения"""
    fn: NoopStats
    iter: NoopStats

    def for_kind(self, kind: Optional[str]) -> NoopStats:
        """Baseline, соответствующий виду измерения"""
        return self.iter if kind == "iter" else self.fn


class EngineContext(BaseModel):
    """Контекст прогона движка"""
    noop: NoopBaselines


class RunReport(BaseModel):
    """Полный отчёт движка"""
    benchmarks: List[BenchmarkTrial] = Field(default_factory=list)
    context: EngineContext
