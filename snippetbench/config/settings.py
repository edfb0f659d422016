"""
Settings - централизованная конфигурация проекта

Единая точка доступа ко всем настройкам:
- Загружает configs/settings.yaml
- Загружает переопределения из переменных окружения (.env)
- Валидирует значения через Pydantic
- Предоставляет типизированный доступ

Использование:
    from snippetbench.config import get_settings

    settings = get_settings()
    print(settings.measurement.min_samples)
    print(settings.worker.start_method)
"""

from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Вложенные модели - точно соответствуют settings.yaml
# =============================================================================

class PathsConfig(BaseModel):
    """Пути проекта"""
    logs_dir: str = "logs"
    shares_dir: str = "shares"
    results_dir: str = "results"


class WorkerConfig(BaseModel):
    """Настройки изолированного процесса-исполнителя"""
    start_method: Literal["spawn", "fork", "forkserver"] = "spawn"
    terminate_grace_seconds: float = Field(default=0.5, ge=0.0)
    poll_interval_seconds: float = Field(default=0.05, gt=0.0)
    # 0: без ограничения по времени
    run_timeout_seconds: float = Field(default=0.0, ge=0.0)


class MeasurementConfig(BaseModel):
    """Параметры движка измерений"""
    warmup_calls: int = Field(default=3, ge=1)
    min_samples: int = Field(default=12, ge=1)
    max_samples: int = Field(default=2000, ge=1)
    min_time_ms: float = Field(default=300.0, ge=0.0)
    max_time_ms: float = Field(default=2000.0, gt=0.0)
    # Вызовы быстрее порога измеряются пачками (kind="iter")
    batch_threshold_ns: int = Field(default=10_000, ge=0)
    max_batch_size: int = Field(default=4096, ge=1)
    optimized_out_factor: float = Field(default=1.42, gt=0.0)


class DependenciesConfig(BaseModel):
    """Настройки загрузки зависимостей"""
    fetch_timeout: int = 30
    allowed_schemes: List[str] = Field(default_factory=lambda: ["http", "https", "file"])


class ShareConfig(BaseModel):
    """Настройки публикации снапшотов"""
    base_url: str = "http://localhost:3000"
    key_prefix: str = "snippetbench:share:"
    default_expiry: Literal["7d", "30d"] = "30d"


class LoggingConsoleConfig(BaseModel):
    """Настройки консольного логирования"""
    enabled: bool = True
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class LoggingRotationConfig(BaseModel):
    """Настройки ротации логов"""
    enabled: bool = True
    max_size_mb: int = 10
    backup_count: int = 5


class LoggingFileConfig(BaseModel):
    """Настройки файлового логирования"""
    enabled: bool = False
    path: str = "snippetbench.log"
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "DEBUG"
    rotation: LoggingRotationConfig = Field(default_factory=LoggingRotationConfig)


class LoggingConfig(BaseModel):
    """Настройки логирования"""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: str = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    console: LoggingConsoleConfig = Field(default_factory=LoggingConsoleConfig)
    file: LoggingFileConfig = Field(default_factory=LoggingFileConfig)


# =============================================================================
# Главный класс настроек
# =============================================================================

class Settings(BaseSettings):
    """
    Централизованные настройки проекта

    Загружает:
    1. Дефолтные значения из класса
    2. Значения из configs/settings.yaml
    3. Переменные окружения (например SNIPPETBENCH_WORKER__START_METHOD=fork)

    Приоритет: kwargs > yaml > env > defaults
    """

    model_config = SettingsConfigDict(
        env_prefix="SNIPPETBENCH_",
        env_nested_delimiter="__",
        extra="ignore"
    )

    # Вложенные конфиги - соответствуют секциям settings.yaml
    paths: PathsConfig = Field(default_factory=PathsConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    measurement: MeasurementConfig = Field(default_factory=MeasurementConfig)
    dependencies: DependenciesConfig = Field(default_factory=DependenciesConfig)
    share: ShareConfig = Field(default_factory=ShareConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def __init__(self, **kwargs):
        # Загружаем YAML используя file_ops
        yaml_data = self._load_yaml_config()

        # Мержим: yaml < kwargs (kwargs имеет приоритет)
        merged = self._deep_merge(yaml_data, kwargs)

        super().__init__(**merged)

    @staticmethod
    def _load_yaml_config() -> dict:
        """Загрузить settings.yaml используя file_ops"""
        # Импортируем здесь чтобы избежать циклических импортов
        from snippetbench.utils.file_ops import load_yaml

        # Ищем settings.yaml относительно корня проекта
        possible_paths = [
            Path("configs/settings.yaml"),
            Path(__file__).parent.parent.parent / "configs" / "settings.yaml",
        ]

        for path in possible_paths:
            if path.exists():
                return load_yaml(path) or {}

        return {}

    @staticmethod
    def _deep_merge(base: dict, override: dict) -> dict:
        """Глубокое слияние словарей"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = Settings._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get_log_file_path(self) -> Path:
        """Полный путь к файлу логов"""
        return Path(self.paths.logs_dir) / self.logging.file.path

    def get_shares_path(self) -> Path:
        """Полный путь к папке снапшотов"""
        return Path(self.paths.shares_dir)

    def get_results_path(self, suite: str) -> Path:
        """Файл результатов прогона сьюта: results_dir/<имя сьюта>_<время>.json"""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return Path(self.paths.results_dir) / f"{Path(suite).stem}_{timestamp}.json"


# =============================================================================
# Singleton и доступ к настройкам
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Получить экземпляр настроек (singleton)

    Использование:
        settings = get_settings()
        print(settings.worker.start_method)
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Перезагрузить настройки (очистить кеш)

    Использовать при изменении конфигов в runtime
    """
    get_settings.cache_clear()
    return get_settings()


def settings_from_dump(data: Optional[dict]) -> Settings:
    """Восстановить Settings из словаря (используется в процессе-исполнителе)"""
    if not data:
        return get_settings()
    return Settings(**data)
