"""
Utils — утилиты

Модули:
- file_ops: Работа с файлами (YAML, JSON)
- cli: Форматирование CLI вывода
"""

from .file_ops import load_yaml, load_json, save_json, ensure_dir

__all__ = [
    # File operations
    "load_yaml",
    "load_json",
    "save_json",
    "ensure_dir",
]
