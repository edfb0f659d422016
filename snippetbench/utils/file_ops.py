"""
file operations - работа с файлами конфигов, сьютов и снапшотов
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union

import yaml


def ensure_dir(path: Union[str, Path]) -> Path:
    """
    Создать директорию если не существует

    Args:
        path: Путь к директории

    Returns:
        Path объект
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def load_yaml(path: Union[str, Path]) -> dict:
    """
    Загрузить YAML файл

    Пустой файл даёт пустой словарь.

    Args:
        path: Путь к файлу

    Returns:
        Словарь с данными

    Raises:
        FileNotFoundError: Если файл не найден
        ValueError: Если верхний уровень файла не словарь
        yaml.YAMLError: Если файл невалидный
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Файл не найден: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Ожидался словарь на верхнем уровне {path}, получено {type(data).__name__}")
    return data


def save_json(data: Any, path: Union[str, Path], indent: int = 2) -> None:
    """
    Атомарно сохранить данные в JSON файл

    Пишет во временный файл рядом с целевым и переименовывает его,
    чтобы читатель никогда не увидел наполовину записанный файл.

    Args:
        data: Данные для сохранения
        path: Путь к файлу
        indent: Отступ для форматирования
    """
    path = Path(path)
    ensure_dir(path.parent)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=indent)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def load_json(path: Union[str, Path]) -> Any:
    """
    Загрузить JSON файл

    Args:
        path: Путь к файлу

    Returns:
        Данные из файла
    """
    path = Path(path)

    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)
