"""
ShareService — публикация снапшотов рабочего пространства по ссылке

Снапшот хранится в key-value хранилище с ограниченным сроком жизни:
    key   = <key_prefix><id>
    value = ShareSnapshot в JSON
    ttl   = EXPIRY_OPTIONS[expiry_option]

Хранилища:
- InMemoryStore: в памяти процесса (тесты, одноразовые запуски)
- JsonFileStore: JSON-файлы в shares_dir с временем истечения внутри

Использование:
    service = ShareService.from_settings(get_settings())
    snapshot = service.create(workspace.to_snapshot(title="sum vs loop"), "7d")
    print(service.url_for(snapshot.id))
"""

import logging
import re
import secrets
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol, Tuple, Union

from ..schemas import EXPIRY_OPTIONS, ShareSnapshot
from ..utils.file_ops import ensure_dir, load_json, save_json


logger = logging.getLogger(__name__)

SHARE_ID_LENGTH = 10


class InvalidExpiryError(ValueError):
    """Неизвестный вариант срока хранения"""


class KeyValueStore(Protocol):
    """Хранилище строк с ограниченным сроком жизни"""

    def set_with_expiry(self, key: str, seconds: int, value: str) -> None:
        ...

    def get(self, key: str) -> Optional[str]:
        ...


# =============================================================================
# Хранилища
# =============================================================================

class InMemoryStore:
    """Хранилище в памяти процесса"""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: Dict[str, Tuple[float, str]] = {}

    def set_with_expiry(self, key: str, seconds: int, value: str) -> None:
        self._data[key] = (self._clock() + seconds, value)

    def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            del self._data[key]
            return None
        return value


class JsonFileStore:
    """
    Хранилище в JSON-файлах

    Каждый ключ — отдельный файл {key, expires_at, value}.
    Просроченный файл удаляется при чтении или в purge_expired().
    """

    def __init__(self, directory: Union[str, Path], clock: Callable[[], float] = time.time):
        self.directory = Path(directory)
        self._clock = clock

    @classmethod
    def from_settings(cls, settings) -> "JsonFileStore":
        return cls(settings.get_shares_path())

    def _path(self, key: str) -> Path:
        return self.directory / f"{re.sub(r'[^A-Za-z0-9_.-]', '_', key)}.json"

    def set_with_expiry(self, key: str, seconds: int, value: str) -> None:
        ensure_dir(self.directory)
        save_json(
            {"key": key, "expires_at": self._clock() + seconds, "value": value},
            self._path(key),
        )

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None

        entry = load_json(path)
        if entry.get("key") != key:
            return None
        if entry["expires_at"] <= self._clock():
            path.unlink(missing_ok=True)
            return None
        return entry["value"]

    def purge_expired(self) -> int:
        """Удалить все просроченные записи, вернуть их количество"""
        if not self.directory.exists():
            return 0

        now = self._clock()
        removed = 0
        for path in self.directory.glob("*.json"):
            if load_json(path).get("expires_at", 0) <= now:
                path.unlink(missing_ok=True)
                removed += 1
        return removed


# =============================================================================
# Сервис
# =============================================================================

def generate_share_id() -> str:
    """URL-безопасный идентификатор из SHARE_ID_LENGTH символов"""
    return secrets.token_urlsafe(SHARE_ID_LENGTH)[:SHARE_ID_LENGTH]


class ShareService:
    """Создание и чтение опубликованных снапшотов"""

    def __init__(
        self,
        store: KeyValueStore,
        base_url: str = "http://localhost:3000",
        key_prefix: str = "snippetbench:share:",
        default_expiry: str = "30d",
        id_factory: Callable[[], str] = generate_share_id,
    ):
        self.store = store
        self.base_url = base_url.rstrip("/")
        self.key_prefix = key_prefix
        self.default_expiry = default_expiry
        self._id_factory = id_factory

    @classmethod
    def from_settings(cls, settings, store: Optional[KeyValueStore] = None) -> "ShareService":
        """Сервис с JsonFileStore (по умолчанию) и параметрами из Settings"""
        return cls(
            store=store or JsonFileStore.from_settings(settings),
            base_url=settings.share.base_url,
            key_prefix=settings.share.key_prefix,
            default_expiry=settings.share.default_expiry,
        )

    def key_for(self, share_id: str) -> str:
        return f"{self.key_prefix}{share_id}"

    def url_for(self, share_id: str) -> str:
        return f"{self.base_url}/share/{share_id}"

    def create(self, snapshot: ShareSnapshot, expiry_option: Optional[str] = None) -> ShareSnapshot:
        """
        Сохранить снапшот

        Args:
            snapshot: Содержимое (id, срок и время создания назначаются здесь)
            expiry_option: "7d" или "30d" (по умолчанию default_expiry)

        Returns:
            Сохранённый снапшот с назначенным id

        Raises:
            InvalidExpiryError: Неизвестный вариант срока
        """
        expiry = expiry_option or self.default_expiry
        if expiry not in EXPIRY_OPTIONS:
            raise InvalidExpiryError(
                f"Неизвестный срок хранения '{expiry}', допустимо: {', '.join(EXPIRY_OPTIONS)}"
            )

        stored = ShareSnapshot.model_validate({
            **snapshot.model_dump(exclude={"id", "expiry_option", "created_at"}),
            "id": self._id_factory(),
            "expiry_option": expiry,
        })

        self.store.set_with_expiry(
            self.key_for(stored.id),
            EXPIRY_OPTIONS[expiry],
            stored.model_dump_json(by_alias=True),
        )
        logger.info(f"Снапшот {stored.id} сохранён на {expiry}")
        return stored

    def get(self, share_id: str) -> Optional[ShareSnapshot]:
        """Прочитать снапшот; None если не найден или истёк"""
        raw = self.store.get(self.key_for(share_id))
        if raw is None:
            return None
        return ShareSnapshot.model_validate_json(raw)
