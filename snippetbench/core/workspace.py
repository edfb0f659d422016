"""
Workspace — состояние редактирования на стороне хоста

Хранит тест-кейсы, setup-код, режим, зависимости и последние результаты.
Правила инвалидации результатов:
- очищают: изменение setup-кода, переключение async режима, любые
  изменения зависимостей, удаление тест-кейса
- не очищают: добавление и правка тест-кейса, загрузка снапшота

Последний тест-кейс удалить нельзя.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from ..schemas import (
    BenchmarkResult,
    Dependency,
    RunBenchmarkMessage,
    ShareSnapshot,
    TestCase,
)


logger = logging.getLogger(__name__)


DEFAULT_SETUP_CODE = """\
# Setup-код выполняется перед каждым тест-кейсом
# Здесь можно подготовить данные, функции, импорты
# Значение return попадает в переменную GLOBAL
return list(range(1000))"""

NEW_TEST_CASE_CODE = """\
# Код тест-кейса
result = "Hello World"
do_not_optimize(result)"""


def default_test_cases() -> List[TestCase]:
    """Тест-кейсы нового рабочего пространства"""
    return [
        TestCase(
            id="1",
            name="For Loop",
            code=(
                "# For Loop\n"
                "total = 0\n"
                "for value in GLOBAL:\n"
                "    total += value\n"
                "do_not_optimize(total)"
            ),
        ),
        TestCase(
            id="2",
            name="sum()",
            code="# sum()\ndo_not_optimize(sum(GLOBAL))",
        ),
    ]


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


class Workspace:
    """
    Рабочее пространство бенчмарка

    Example:
        ws = Workspace()
        ws.add_test_case(name="sorted", code="do_not_optimize(sorted(GLOBAL))")
        results = await manager.run(**ws.run_kwargs())
        ws.set_results(results)
    """

    def __init__(self):
        self.test_cases: List[TestCase] = []
        self.setup_code: str = ""
        self.async_mode: bool = False
        self.dependencies: List[Dependency] = []
        self.results: List[BenchmarkResult] = []
        self.is_running: bool = False
        self.selected_id: Optional[str] = None
        self.reset()

    def reset(self) -> None:
        """Вернуть состояние по умолчанию"""
        self.test_cases = default_test_cases()
        self.setup_code = DEFAULT_SETUP_CODE
        self.async_mode = False
        self.dependencies = []
        self.results = []
        self.is_running = False
        self.selected_id = self.test_cases[0].id

    # =========================================================================
    # Тест-кейсы
    # =========================================================================

    def add_test_case(self, name: Optional[str] = None, code: Optional[str] = None) -> TestCase:
        """Добавить тест-кейс и выбрать его"""
        test_case = TestCase(
            id=_new_id(),
            name=name or f"Test Case {len(self.test_cases) + 1}",
            code=NEW_TEST_CASE_CODE if code is None else code,
        )
        self.test_cases.append(test_case)
        self.selected_id = test_case.id
        return test_case

    def remove_test_case(self, test_case_id: str) -> bool:
        """
        Удалить тест-кейс

        Returns:
            False, если это последний тест-кейс или id не найден
        """
        if len(self.test_cases) <= 1:
            logger.debug("Последний тест-кейс не удаляется")
            return False

        remaining = [tc for tc in self.test_cases if tc.id != test_case_id]
        if len(remaining) == len(self.test_cases):
            return False

        self.test_cases = remaining
        if self.selected_id == test_case_id:
            self.selected_id = remaining[0].id
        self.results = []
        return True

    def update_test_case(self, test_case_id: str, **updates: Any) -> Optional[TestCase]:
        """Обновить поля тест-кейса (name, code)"""
        for index, test_case in enumerate(self.test_cases):
            if test_case.id == test_case_id:
                updated = TestCase.model_validate({**test_case.model_dump(), **updates})
                self.test_cases[index] = updated
                return updated
        return None

    def set_test_cases(self, test_cases: Sequence[TestCase]) -> None:
        if not test_cases:
            raise ValueError("Список тест-кейсов не может быть пустым")
        self.test_cases = list(test_cases)
        self.selected_id = self.test_cases[0].id

    def select(self, test_case_id: str) -> None:
        self.selected_id = test_case_id

    # =========================================================================
    # Setup и режим
    # =========================================================================

    def update_setup_code(self, code: str) -> None:
        """Правка setup-кода пользователем (сбрасывает результаты)"""
        self.setup_code = code
        self.results = []

    def set_setup_code(self, code: str) -> None:
        """Установить setup-код без сброса результатов"""
        self.setup_code = code

    def set_async_mode(self, enabled: bool) -> None:
        self.async_mode = enabled
        self.results = []

    # =========================================================================
    # Зависимости
    # =========================================================================

    def add_dependency(self) -> Dependency:
        dependency = Dependency(id=_new_id(), name="new_package", url="", mode="module", enabled=False)
        self.dependencies.append(dependency)
        self.results = []
        return dependency

    def remove_dependency(self, dependency_id: str) -> None:
        self.dependencies = [d for d in self.dependencies if d.id != dependency_id]
        self.results = []

    def update_dependency(self, dependency_id: str, **updates: Any) -> Optional[Dependency]:
        """Обновить поля зависимости (принимает и алиасы, например globalName)"""
        updated = None
        for index, dependency in enumerate(self.dependencies):
            if dependency.id == dependency_id:
                updated = Dependency.model_validate({**dependency.model_dump(), **updates})
                self.dependencies[index] = updated
        self.results = []
        return updated

    def toggle_dependency(self, dependency_id: str) -> None:
        self.dependencies = [
            d.model_copy(update={"enabled": not d.enabled}) if d.id == dependency_id else d
            for d in self.dependencies
        ]
        self.results = []

    def set_dependencies(self, dependencies: Sequence[Dependency]) -> None:
        self.dependencies = list(dependencies)

    # =========================================================================
    # Результаты
    # =========================================================================

    def set_running(self, running: bool) -> None:
        self.is_running = running

    def set_results(self, results: Sequence[BenchmarkResult]) -> None:
        self.results = list(results)

    def clear_results(self) -> None:
        self.results = []

    # =========================================================================
    # Преобразования
    # =========================================================================

    def to_request(self) -> RunBenchmarkMessage:
        """Запрос на прогон из текущего состояния"""
        return RunBenchmarkMessage(
            test_cases=list(self.test_cases),
            setup_code=self.setup_code,
            async_mode=self.async_mode,
            dependencies=list(self.dependencies),
        )

    def run_kwargs(self) -> Dict[str, Any]:
        """Аргументы для RunManager.run()"""
        return {
            "test_cases": list(self.test_cases),
            "setup_code": self.setup_code,
            "async_mode": self.async_mode,
            "dependencies": list(self.dependencies),
        }

    def to_snapshot(self, title: Optional[str] = None, include_results: bool = True) -> ShareSnapshot:
        """Снапшот для публикации (id и срок назначает ShareService)"""
        return ShareSnapshot(
            title=title,
            dependencies=list(self.dependencies),
            setup_code=self.setup_code,
            test_cases=list(self.test_cases),
            results=list(self.results) if include_results else [],
            async_mode=self.async_mode,
        )

    def load_snapshot(self, snapshot: ShareSnapshot) -> None:
        """Загрузить состояние из снапшота"""
        if snapshot.test_cases:
            self.set_test_cases(snapshot.test_cases)
        self.set_setup_code(snapshot.setup_code)
        self.async_mode = snapshot.async_mode
        self.set_dependencies(snapshot.dependencies)
        self.set_results(snapshot.results)

    @classmethod
    def from_suite(cls, data: Dict[str, Any]) -> "Workspace":
        """
        Создать рабочее пространство из описания сьюта (YAML)

        Формат:
            setup_code: "return list(range(1000))"
            async_mode: false
            dependencies: [{name, url, mode, global_name, enabled}]
            test_cases: [{name, code}]

        Отсутствующие id назначаются по порядку.
        """
        workspace = cls()

        raw_cases = data.get("test_cases") or data.get("testCases") or []
        test_cases = [
            TestCase.model_validate({"id": str(index), **raw})
            for index, raw in enumerate(raw_cases, start=1)
        ]
        if test_cases:
            workspace.set_test_cases(test_cases)

        setup = data.get("setup_code", data.get("setupCode"))
        if setup is not None:
            workspace.set_setup_code(setup)

        workspace.async_mode = bool(data.get("async_mode", data.get("asyncMode", False)))

        raw_deps = data.get("dependencies") or []
        workspace.set_dependencies([
            Dependency.model_validate({"id": str(index), "enabled": True, **raw})
            for index, raw in enumerate(raw_deps, start=1)
        ])

        return workspace
