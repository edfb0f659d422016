"""
Resource Client - загрузка исходников зависимостей по url

Ответственность (SRP):
- Получение текста ресурса по http(s):// (requests)
- Чтение локальных ресурсов по file://

НЕ отвечает за:
- Исполнение загруженного кода (это DependencyLoader)
- Мемоизацию загрузок (это DependencyLoader)
- Структурную проверку url (это validator)

Использование:
    from snippetbench.config import get_settings
    from snippetbench.clients import ResourceClient

    client = ResourceClient.from_settings(get_settings())
    source = client.fetch_text("https://example.com/lib.py")
"""

import logging
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import unquote, urlparse

import requests

logger = logging.getLogger(__name__)


class ResourceFetchError(Exception):
    """Ресурс не удалось получить"""


class ResourceClient:
    """
    Клиент для получения исходного кода зависимостей

    Принципы:
    - Stateless (кроме конфигурации и HTTP-сессии)
    - Синхронный: вызывающий код сам уводит вызов в поток
    """

    def __init__(
        self,
        timeout: int = 30,
        allowed_schemes: Optional[Iterable[str]] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            timeout: Таймаут HTTP запроса в секундах
            allowed_schemes: Разрешённые схемы url
            session: HTTP-сессия (для подмены в тестах)
        """
        self.timeout = timeout
        self.allowed_schemes = set(allowed_schemes or ("http", "https", "file"))
        self.session = session or requests.Session()

        logger.debug(f"ResourceClient инициализирован, схемы={sorted(self.allowed_schemes)}")

    @classmethod
    def from_settings(cls, settings) -> "ResourceClient":
        """
        Создать клиент из Settings

        Args:
            settings: Объект Settings из snippetbench.config

        Returns:
            Настроенный ResourceClient
        """
        return cls(
            timeout=settings.dependencies.fetch_timeout,
            allowed_schemes=settings.dependencies.allowed_schemes,
        )

    def fetch_text(self, url: str) -> str:
        """
        Получить текст ресурса

        Args:
            url: Адрес ресурса (http, https или file)

        Returns:
            Содержимое ресурса

        Raises:
            ResourceFetchError: Если схема не разрешена или запрос не удался
        """
        parsed = urlparse(url.strip())
        scheme = parsed.scheme.lower()

        if scheme not in self.allowed_schemes:
            raise ResourceFetchError(f"Схема '{scheme}' не разрешена для {url}")

        if scheme == "file":
            return self._read_file(parsed.path)

        logger.debug(f"Загрузка ресурса {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise ResourceFetchError(f"Ошибка запроса {url}: {e}") from e

        if response.status_code != 200:
            raise ResourceFetchError(f"HTTP {response.status_code}: {response.text[:200]}")

        return response.text

    def _read_file(self, raw_path: str) -> str:
        """Прочитать локальный ресурс"""
        path = Path(unquote(raw_path))
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ResourceFetchError(f"Не удалось прочитать {path}: {e}") from e

    def close(self) -> None:
        """Закрыть HTTP-сессию"""
        self.session.close()
