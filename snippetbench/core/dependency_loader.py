"""
DependencyLoader — загрузка внешних зависимостей в общую область видимости

Ответственность:
- Получение исходника через ResourceClient (в отдельном потоке)
- Исполнение исходника как модуля или как скрипта в общей области
- Публикация значения под именем зависимости в self.scope
- Мемоизация по ключу mode:url с общим in-flight Task

Область видимости (scope) — обычный словарь привязок, принадлежащий
загрузчику. Sandbox получает его явно и кладёт в globals сниппетов.

Использование:
    loader = DependencyLoader.from_settings(get_settings())
    await loader.load_dependencies(dependencies)
    fn = compile_snippet(code, global_value, scope=loader.scope)
"""

import asyncio
import logging
import types
from typing import Any, Dict, List, Optional, Sequence

from ..clients.resources import ResourceClient, ResourceFetchError
from ..schemas import Dependency
from .errors import DependencyError


logger = logging.getLogger(__name__)


class DependencyLoader:
    """
    Загрузчик зависимостей с мемоизацией

    Повторная или параллельная загрузка той же пары mode:url
    не приводит к повторному получению исходника. Неудачная загрузка
    удаляется из in-flight, следующий вызов пробует снова.
    """

    def __init__(self, client: ResourceClient, scope: Optional[Dict[str, Any]] = None):
        """
        Args:
            client: Клиент для получения исходников
            scope: Словарь привязок (по умолчанию новый пустой)
        """
        self.client = client
        self.scope: Dict[str, Any] = scope if scope is not None else {}

        self._loaded: Dict[str, Any] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}

    @classmethod
    def from_settings(cls, settings) -> "DependencyLoader":
        """Создать загрузчик с клиентом из Settings"""
        return cls(ResourceClient.from_settings(settings))

    # =========================================================================
    # Публичный API
    # =========================================================================

    async def load_dependencies(self, dependencies: Sequence[Dependency]) -> None:
        """
        Загрузить все активные зависимости параллельно

        Неактивные (выключенные или без url) пропускаются.

        Raises:
            DependencyError: Первая (по порядку списка) упавшая зависимость
        """
        active = [d for d in dependencies if d.is_active]
        if not active:
            return

        logger.info(f"Загрузка зависимостей: {', '.join(d.name for d in active)}")

        outcomes = await asyncio.gather(
            *(self.load_dependency(d) for d in active),
            return_exceptions=True,
        )

        for dependency, outcome in zip(active, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Зависимость {dependency.name} не загружена: {outcome}")
                raise DependencyError(f"Не удалось загрузить зависимости: {outcome}") from outcome

    async def load_dependency(self, dependency: Dependency) -> Any:
        """
        Загрузить одну зависимость и вернуть опубликованное значение

        Raises:
            DependencyError: Исходник не получен, упал при исполнении
                или не определил ожидаемое глобальное имя
        """
        key = dependency.loader_key

        if key in self._loaded:
            value = self._loaded[key]
            self.scope[dependency.name] = value
            return value

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(dependency))
            self._in_flight[key] = task

        try:
            value = await task
        finally:
            if self._in_flight.get(key) is task:
                del self._in_flight[key]

        self._loaded[key] = value
        self.scope[dependency.name] = value
        return value

    def reset(self) -> None:
        """Сбросить мемоизацию, in-flight загрузки и привязки"""
        for task in self._in_flight.values():
            task.cancel()
        self._in_flight.clear()
        self._loaded.clear()
        self.scope.clear()

    @property
    def loaded_keys(self) -> List[str]:
        """Ключи успешно загруженных зависимостей"""
        return list(self._loaded)

    # =========================================================================
    # Загрузка по режимам
    # =========================================================================

    async def _load(self, dependency: Dependency) -> Any:
        if dependency.mode == "global-script":
            return await self._load_global_script(dependency)
        return await self._load_module(dependency)

    async def _fetch(self, dependency: Dependency) -> str:
        """Получить исходник, не блокируя event loop"""
        try:
            return await asyncio.to_thread(self.client.fetch_text, dependency.url)
        except ResourceFetchError as e:
            raise DependencyError(f"{dependency.name}: {e}") from e

    async def _load_module(self, dependency: Dependency) -> Any:
        """Исполнить исходник как отдельный модуль; опубликовать default или модуль"""
        source = await self._fetch(dependency)

        module = types.ModuleType(dependency.name)
        module.__file__ = dependency.url
        try:
            exec(compile(source, dependency.url, "exec"), module.__dict__)
        except Exception as e:
            raise DependencyError(
                f"{dependency.name}: ошибка исполнения модуля: {type(e).__name__}: {e}"
            ) from e

        logger.debug(f"Модуль {dependency.name} загружен из {dependency.url}")
        return getattr(module, "default", module)

    async def _load_global_script(self, dependency: Dependency) -> Any:
        """Исполнить исходник в общей области; значение из global_name или name"""
        global_name = dependency.global_name

        if global_name and global_name in self.scope:
            logger.debug(f"{global_name} уже определён, загрузка {dependency.name} пропущена")
            return self.scope[global_name]

        source = await self._fetch(dependency)
        try:
            exec(compile(source, dependency.url, "exec"), self.scope)
        except Exception as e:
            raise DependencyError(
                f"{dependency.name}: ошибка исполнения скрипта: {type(e).__name__}: {e}"
            ) from e

        for candidate in (global_name, dependency.name):
            if candidate and candidate in self.scope:
                logger.debug(f"Скрипт {dependency.name} загружен, значение из {candidate}")
                return self.scope[candidate]

        raise DependencyError(
            f"{dependency.name}: скрипт не определил глобальное имя {global_name or dependency.name}"
        )
