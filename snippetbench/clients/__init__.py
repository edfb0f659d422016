"""
Clients - клиенты для внешних ресурсов

Клиенты:
- ResourceClient: получение исходников зависимостей по url

Принципы:
- Клиент отвечает только за транспорт
- Используют Settings через фабричный метод from_settings()
"""

from .resources import ResourceClient, ResourceFetchError

__all__ = [
    "ResourceClient",
    "ResourceFetchError",
]
