"""
Case Schemas — входные данные прогона

Отвечает за:
- Тест-кейсы (TestCase): сниппеты, которые сравниваются между собой
- Зависимости (Dependency): внешние модули/скрипты, доступные сниппетам

Модели принимают как snake_case имена полей, так и camelCase алиасы
из протокола обмена сообщениями (setupCode, globalName, ...).
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DependencyMode = Literal["module", "global-script"]

# Старые имена режимов из сохранённых снапшотов
_LEGACY_MODES = {
    "esm": "module",
    "umd": "global-script",
}


class TestCase(BaseModel):
    """
    Один сниппет для сравнения

    Пример YAML:
        - id: "1"
          name: "For Loop"
          code: |
            total = 0
            for value in GLOBAL:
                total += value
    """
    __test__ = False  # pytest не должен собирать эту модель как тест

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1, description="Уникальный стабильный ID")
    name: str = Field(..., description="Отображаемое имя (может повторяться)")
    code: str = Field(default="", description="Исходный код сниппета")


class Dependency(BaseModel):
    """
    Внешняя зависимость, загружаемая в общую область видимости

    Режимы:
    - module: исходник исполняется как отдельный модуль, под именем name
      публикуется его атрибут default (или сам модуль)
    - global-script: исходник исполняется прямо в общей области видимости,
      значение берётся из global_name (или name)

    Структурные инварианты (непустой url, global_name для global-script)
    проверяются валидатором, а не при создании модели: при редактировании
    зависимость может временно быть неполной.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    url: str = ""
    mode: DependencyMode = "module"
    global_name: Optional[str] = Field(default=None, alias="globalName")
    enabled: bool = False

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, v):
        """Поддержка старых имён режимов (esm/umd)"""
        if isinstance(v, str):
            return _LEGACY_MODES.get(v, v)
        return v

    @property
    def loader_key(self) -> str:
        """Ключ мемоизации загрузчика: mode:url"""
        return f"{self.mode}:{self.url}"

    @property
    def is_active(self) -> bool:
        """Участвует ли зависимость в прогоне"""
        return self.enabled and bool(self.url.strip())
