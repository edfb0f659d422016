"""
Message Schemas — протокол обмена с процессом-исполнителем

Отвечает за:
- Входящий запрос (RunBenchmarkMessage)
- Исходящие сообщения (ProgressMessage, CompleteMessage, ErrorMessage)
- Разбор исходящих сообщений по полю type

Через границу процесса передаются только словари, полученные из
model_dump(mode="json", by_alias=True): общего изменяемого состояния нет.
"""

from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .cases import Dependency, TestCase
from .results import BenchmarkResult, ProgressEvent


RUN_BENCHMARK = "RUN_BENCHMARK"
BENCHMARK_PROGRESS = "BENCHMARK_PROGRESS"
BENCHMARK_COMPLETE = "BENCHMARK_COMPLETE"
BENCHMARK_ERROR = "BENCHMARK_ERROR"


class RunBenchmarkMessage(BaseModel):
    """Запрос на прогон: хост → исполнитель"""
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["RUN_BENCHMARK"] = RUN_BENCHMARK
    test_cases: List[TestCase] = Field(default_factory=list, alias="testCases")
    setup_code: str = Field(default="", alias="setupCode")
    async_mode: bool = Field(default=False, alias="asyncMode")
    dependencies: List[Dependency] = Field(default_factory=list)


class ProgressMessage(BaseModel):
    """Переход между стадиями (не терминальное)"""
    type: Literal["BENCHMARK_PROGRESS"] = BENCHMARK_PROGRESS
    progress: ProgressEvent


class CompleteMessage(BaseModel):
    """Успешное завершение прогона (терминальное)"""
    type: Literal["BENCHMARK_COMPLETE"] = BENCHMARK_COMPLETE
    results: List[BenchmarkResult] = Field(default_factory=list)


class ErrorMessage(BaseModel):
    """Прогон целиком провалился (терминальное)"""
    type: Literal["BENCHMARK_ERROR"] = BENCHMARK_ERROR
    error: str


WorkerResponse = Annotated[
    Union[ProgressMessage, CompleteMessage, ErrorMessage],
    Field(discriminator="type"),
]

_response_adapter: TypeAdapter = TypeAdapter(WorkerResponse)


def encode_message(message: BaseModel) -> Dict[str, Any]:
    """Сериализовать сообщение для передачи через очередь"""
    return message.model_dump(mode="json", by_alias=True)


def parse_worker_response(data: Dict[str, Any]) -> Union[ProgressMessage, CompleteMessage, ErrorMessage]:
    """Разобрать исходящее сообщение исполнителя по полю type"""
    return _response_adapter.validate_python(data)


def parse_run_request(data: Dict[str, Any]) -> RunBenchmarkMessage:
    """Разобрать входящий запрос"""
    return RunBenchmarkMessage.model_validate(data)
