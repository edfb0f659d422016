"""
Validator — проверка кода сниппетов и структуры зависимостей

Три уровня проверки:
- validate_syntax / validate_setup_syntax: только компиляция, код не вызывается
- validate_with_dry_run: setup + компиляция + один пробный вызов
- validate_dependencies: структурная проверка, без сетевых запросов
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence
from urllib.parse import urlparse

from ..schemas import Dependency, DependencyValidationResult, ValidationResult
from .errors import CompileError, ExecutionError
from .sandbox import compile_setup, compile_snippet, evaluate_setup


logger = logging.getLogger(__name__)

DEFAULT_URL_SCHEMES = ("http", "https", "file")


def validate_syntax(code: str, is_async: bool = False) -> ValidationResult:
    """Проверить, что сниппет компилируется (без вызова)"""
    try:
        compile_snippet(code, None, is_async)
    except CompileError as e:
        return ValidationResult.invalid(str(e))
    return ValidationResult.ok()


def validate_setup_syntax(setup_code: str) -> ValidationResult:
    """Проверить, что setup-код компилируется (без вызова)"""
    try:
        compile_setup(setup_code)
    except CompileError as e:
        return ValidationResult.invalid(str(e))
    return ValidationResult.ok()


async def validate_with_dry_run(
    setup_code: str,
    code: str,
    is_async: bool = False,
    scope: Optional[Mapping[str, Any]] = None,
) -> ValidationResult:
    """
    Проверить сниппет пробным запуском

    Setup выполняется заново для каждой проверки, чтобы сниппеты
    не видели изменений GLOBAL, сделанных друг другом.

    Args:
        setup_code: Общий setup-код
        code: Код сниппета
        is_async: Асинхронный режим (вызов ожидается через await)
        scope: Привязки загруженных зависимостей

    Returns:
        ValidationResult с текстом ошибки (с префиксом фазы) при неудаче
    """
    try:
        global_value = evaluate_setup(setup_code, scope)
        snippet = compile_snippet(code, global_value, is_async, scope=scope)
        outcome = snippet()
        if is_async:
            await outcome
    except (CompileError, ExecutionError) as e:
        return ValidationResult.invalid(str(e))
    return ValidationResult.ok()


def _is_valid_url(url: str, schemes: Iterable[str]) -> bool:
    """Схема из списка разрешённых и непустое расположение"""
    parsed = urlparse(url)
    if parsed.scheme.lower() not in schemes:
        return False
    if parsed.scheme.lower() == "file":
        return bool(parsed.path)
    return bool(parsed.netloc)


def validate_dependencies(
    dependencies: Sequence[Dependency],
    allowed_schemes: Optional[Iterable[str]] = None,
) -> DependencyValidationResult:
    """
    Структурная проверка включённых зависимостей

    Проверяет:
    - имя непустое и является идентификатором Python
    - url непустой и корректный (схема + расположение)
    - для global-script указан global_name

    Выключенные зависимости не проверяются. Сеть не используется.
    """
    schemes = {s.lower() for s in (allowed_schemes or DEFAULT_URL_SCHEMES)}
    errors: List[str] = []

    for dependency in dependencies:
        if not dependency.enabled:
            continue

        name = dependency.name.strip()
        label = name or f"#{dependency.id}"

        if not name:
            errors.append(f"Зависимость #{dependency.id}: не указано имя")
        elif not name.isidentifier():
            errors.append(f"{label}: имя должно быть идентификатором Python")

        url = dependency.url.strip()
        if not url:
            errors.append(f"{label}: не указан url")
        elif not _is_valid_url(url, schemes):
            errors.append(f"{label}: некорректный url '{url}'")

        if dependency.mode == "global-script" and not (dependency.global_name or "").strip():
            errors.append(f"{label}: для режима global-script требуется global_name")

    if errors:
        logger.warning(f"Зависимости не прошли проверку: {'; '.join(errors)}")

    return DependencyValidationResult(is_valid=not errors, errors=errors)
