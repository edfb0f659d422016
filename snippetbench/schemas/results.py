"""
Result Schemas - схемы для результатов бенчмарка

Отвечает за:
- Результат одного тест-кейса (BenchmarkResult)
- События прогресса прогона (ProgressEvent)
- Результаты валидации (ValidationResult, DependencyValidationResult)
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BenchmarkResult(BaseModel):
    """
    Результат одного тест-кейса

    Либо успешное измерение (avg/p75/p99 в микросекундах и ops),
    либо ошибка — одновременно они не заполняются.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str

    # Измерения (микросекунды)
    avg: Optional[float] = Field(default=None, ge=0.0)
    p99: Optional[float] = Field(default=None, ge=0.0)
    p75: Optional[float] = Field(default=None, ge=0.0)
    ops: Optional[int] = Field(default=None, ge=0, description="Операций в секунду")

    # Ошибка компиляции/выполнения
    error: Optional[str] = None

    # Стоимость неотличима от пустого вызова
    optimized_out: Optional[bool] = Field(default=None, alias="optimizedOut")

    # Заполняется calculate_relative_performance()
    relative_performance: Optional[float] = Field(default=None, alias="relativePerformance")

    @model_validator(mode="after")
    def check_error_exclusive(self) -> "BenchmarkResult":
        """Ошибка и измерение взаимоисключающие"""
        measured = [self.avg, self.p99, self.p75, self.ops]
        if self.error is not None:
            if any(v is not None for v in measured) or self.optimized_out is not None:
                raise ValueError("Результат с ошибкой не может содержать измерений")
        elif any(v is None for v in measured):
            raise ValueError("Результат без ошибки должен содержать avg, p99, p75 и ops")
        return self

    @property
    def is_error(self) -> bool:
        """Завершился ли тест-кейс ошибкой"""
        return self.error is not None

    @classmethod
    def failure(cls, name: str, error: str) -> "BenchmarkResult":
        """Создать результат с ошибкой"""
        return cls(name=name, error=error)


class ProgressEvent(BaseModel):
    """
    Событие прогресса — переход между стадиями прогона

    current — сколько тест-кейсов уже получили окончательный результат,
    не убывает в пределах одного прогона.
    """
    current: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    name: str


class ValidationResult(BaseModel):
    """Результат проверки одного фрагмента кода"""
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(..., alias="isValid")
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def invalid(cls, error: str) -> "ValidationResult":
        return cls(is_valid=False, error=error)


class DependencyValidationResult(BaseModel):
    """Результат структурной проверки зависимостей"""
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(..., alias="isValid")
    errors: List[str] = Field(default_factory=list)
