"""
Sandbox — компиляция сниппетов в изолированные вызываемые объекты

Сниппет компилируется как тело функции. Снаружи ему видны только:
- GLOBAL: значение, которое вернул setup-код
- do_not_optimize: хук, помечающий значение как «использованное»
- builtins и явно переданные привязки зависимостей (scope)

Код пользователя разбирается в AST и вставляется в шаблон
(текст не переформатируется). Шаблон для синхронного режима:

    def __factory__(GLOBAL, do_not_optimize):
        def __snippet__():
            try:
                <инструкции сниппета>
                pass
            except Exception as __error__:
                __raise_execution_error__(__error__)
        return __snippet__

В асинхронном режиме внутренняя функция объявляется как async def.
Обёртка try/except живёт внутри той же функции, поэтому измеряемый вызов
не добавляет лишнего уровня вызова.

Использование:
    from snippetbench.core.sandbox import compile_setup, compile_snippet

    setup = compile_setup("return list(range(1000))")
    fn = compile_snippet("do_not_optimize(sum(GLOBAL))", setup(), is_async=False)
    fn()
"""

import ast
import builtins
import inspect
import logging
import textwrap
from typing import Any, Callable, Dict, List, Mapping, NoReturn, Optional

from .errors import (
    COMPILE_ERROR_PREFIX,
    EXECUTION_ERROR_PREFIX,
    SETUP_COMPILE_ERROR_PREFIX,
    CompileError,
    ExecutionError,
)


logger = logging.getLogger(__name__)

SETUP_EXECUTION_ERROR_PREFIX = "Ошибка выполнения setup-кода: "

_FACTORY_NAME = "__factory__"
_SNIPPET_NAME = "__snippet__"
_SETUP_NAME = "__setup__"
_RAISE_HELPER = "__raise_execution_error__"


# =============================================================================
# Хук do_not_optimize
# =============================================================================

_observed: Any = None


def do_not_optimize(value: Any) -> None:
    """Пометить значение как использованное (сохраняется в sink модуля)"""
    global _observed
    _observed = value


def _raise_execution_error(error: Exception) -> NoReturn:
    """Перевыбросить ошибку тела сниппета с префиксом фазы выполнения"""
    raise ExecutionError(f"{EXECUTION_ERROR_PREFIX}{_describe(error)}") from error


def _describe(error: BaseException) -> str:
    """Краткое описание исключения: Тип: сообщение"""
    message = str(error)
    if message:
        return f"{type(error).__name__}: {message}"
    return type(error).__name__


# =============================================================================
# Генерация AST
# =============================================================================

_SNIPPET_TEMPLATE = (
    "def {factory}(GLOBAL, do_not_optimize):\n"
    "    {keyword} {snippet}():\n"
    "        try:\n"
    "            pass\n"
    "        except Exception as __error__:\n"
    "            {helper}(__error__)\n"
    "    return {snippet}\n"
)

_SETUP_TEMPLATE = "def {setup}():\n    pass\n"

_PARSE_FLAGS = ast.PyCF_ONLY_AST | ast.PyCF_ALLOW_TOP_LEVEL_AWAIT


def _parse_body(code: str, filename: str) -> List[ast.stmt]:
    """
    Разобрать пользовательский код в список инструкций

    Код не переформатируется, поэтому многострочные литералы сохраняются
    как есть, а номера строк остаются номерами строк пользователя.
    Равномерно сдвинутый код (например, вставленный из функции) выравнивается.
    """
    try:
        return compile(code, filename, "exec", _PARSE_FLAGS, dont_inherit=True).body
    except IndentationError:
        dedented = textwrap.dedent(code)
        if dedented == code:
            raise
        return compile(dedented, filename, "exec", _PARSE_FLAGS, dont_inherit=True).body


def _splice(body: List[ast.stmt], user_body: List[ast.stmt]) -> List[ast.stmt]:
    """Вставить код пользователя перед pass шаблона (pass нужен для пустого кода)"""
    return [*user_body, *body]


def _snippet_tree(code: str, is_async: bool, filename: str) -> ast.Module:
    """AST фабрики сниппета"""
    module = ast.parse(_SNIPPET_TEMPLATE.format(
        factory=_FACTORY_NAME,
        keyword="async def" if is_async else "def",
        snippet=_SNIPPET_NAME,
        helper=_RAISE_HELPER,
    ))
    try_node = module.body[0].body[0].body[0]
    try_node.body = _splice(try_node.body, _parse_body(code, filename))
    return module


def _setup_tree(code: str, filename: str) -> ast.Module:
    """AST функции setup"""
    module = ast.parse(_SETUP_TEMPLATE.format(setup=_SETUP_NAME))
    function = module.body[0]
    function.body = _splice(function.body, _parse_body(code, filename))
    return module


def _make_namespace(scope: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Свежее пространство имён: builtins + привязки зависимостей"""
    namespace: Dict[str, Any] = dict(scope or {})
    namespace["__builtins__"] = builtins
    namespace["__name__"] = _SNIPPET_NAME
    namespace[_RAISE_HELPER] = _raise_execution_error
    return namespace


def _compile(
    build: Callable[[], ast.Module],
    filename: str,
    prefix: str,
    namespace: Dict[str, Any],
) -> None:
    """Собрать AST, скомпилировать и исполнить определение функции в namespace"""
    try:
        code_obj = compile(build(), filename, "exec", dont_inherit=True)
    except SyntaxError as e:
        location = f" (строка {e.lineno})" if e.lineno else ""
        raise CompileError(f"{prefix}{e.msg}{location}") from e
    exec(code_obj, namespace)


# =============================================================================
# Публичный API
# =============================================================================

def compile_snippet(
    code: str,
    global_value: Any = None,
    is_async: bool = False,
    instrumentation_hook: Optional[Callable[[Any], None]] = None,
    scope: Optional[Mapping[str, Any]] = None,
    filename: str = "<snippet>",
) -> Callable[[], Any]:
    """
    Скомпилировать сниппет в вызываемый объект

    Args:
        code: Исходный код сниппета (тело функции)
        global_value: Значение GLOBAL
        is_async: Компилировать как async def
        instrumentation_hook: Хук do_not_optimize (по умолчанию модульный)
        scope: Привязки зависимостей
        filename: Имя файла для traceback

    Returns:
        Функция без аргументов (или корутинная функция в async режиме)

    Raises:
        CompileError: Код не компилируется (в том числе await вне async режима)
    """
    namespace = _make_namespace(scope)
    _compile(
        lambda: _snippet_tree(code, is_async, filename),
        filename,
        COMPILE_ERROR_PREFIX,
        namespace,
    )

    snippet = namespace[_FACTORY_NAME](global_value, instrumentation_hook or do_not_optimize)

    if inspect.isgeneratorfunction(snippet) or inspect.isasyncgenfunction(snippet):
        raise CompileError(f"{COMPILE_ERROR_PREFIX}yield в сниппете не поддерживается")

    return snippet


def compile_setup(
    code: str,
    scope: Optional[Mapping[str, Any]] = None,
) -> Callable[[], Any]:
    """
    Скомпилировать setup-код; его return станет значением GLOBAL

    Пустой setup даёт функцию, возвращающую None.

    Raises:
        CompileError: Setup-код не компилируется
    """
    if not code.strip():
        return lambda: None

    namespace = _make_namespace(scope)
    _compile(
        lambda: _setup_tree(code, "<setup>"),
        "<setup>",
        SETUP_COMPILE_ERROR_PREFIX,
        namespace,
    )
    setup = namespace[_SETUP_NAME]

    if inspect.isgeneratorfunction(setup):
        raise CompileError(f"{SETUP_COMPILE_ERROR_PREFIX}yield в setup-коде не поддерживается")

    return setup


def evaluate_setup(code: str, scope: Optional[Mapping[str, Any]] = None) -> Any:
    """
    Скомпилировать и выполнить setup-код, вернуть GLOBAL

    Raises:
        CompileError: Setup-код не компилируется
        ExecutionError: Setup-код упал при выполнении
    """
    setup = compile_setup(code, scope)
    try:
        return setup()
    except Exception as e:
        raise ExecutionError(f"{SETUP_EXECUTION_ERROR_PREFIX}{_describe(e)}") from e
