"""
SnippetBench CLI
Универсальный entry point для всех операций.

Примеры:
    # Прогон сьюта
    python main.py run examples/benchmark.yaml
    python main.py run examples/benchmark.yaml --json --output results/last.json
    python main.py run examples/benchmark.yaml --save

    # Проверка без запуска
    python main.py validate examples/benchmark.yaml

    # Публикация и просмотр
    python main.py share examples/benchmark.yaml --title "loop vs sum" --expiry 7d
    python main.py show <id>

    # Информация
    python main.py info
"""

import asyncio
import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from dotenv import load_dotenv
load_dotenv()

from rich.console import Console

from snippetbench.config import get_settings, setup_logging
from snippetbench.core import (
    BenchmarkError,
    ShareService,
    Workspace,
    calculate_relative_performance,
    get_performance_ranking,
    validate_dependencies,
    validate_setup_syntax,
    validate_syntax,
)
from snippetbench.core.share import InvalidExpiryError
from snippetbench.schemas import BenchmarkResult, ProgressEvent
from snippetbench.utils.cli import print_kv, print_section, results_table
from snippetbench.utils.file_ops import load_json, load_yaml, save_json
from snippetbench.worker import RunManager

# Настраиваем логирование при старте
setup_logging()

console = Console()


def load_workspace(path: str) -> Workspace:
    """Загрузить сьют из YAML"""
    return Workspace.from_suite(load_yaml(path))


def dump_results(results) -> list:
    return [r.model_dump(mode="json", by_alias=True) for r in results]


# =============================================================================
# Команды
# =============================================================================

async def cmd_run(args) -> int:
    """Прогнать сьют в процессе-исполнителе"""
    settings = get_settings()
    workspace = load_workspace(args.suite)
    if args.async_mode:
        workspace.set_async_mode(True)

    manager = RunManager(settings)
    try:
        with console.status("Запуск процесса-исполнителя...") as status:
            def on_progress(event: ProgressEvent) -> None:
                status.update(f"[{event.current}/{event.total}] {event.name}")

            workspace.set_running(True)
            results = await manager.run(**workspace.run_kwargs(), on_progress=on_progress)
    except BenchmarkError as e:
        console.print(f"[red]Ошибка: {e}[/red]")
        return 1
    finally:
        workspace.set_running(False)
        manager.close()

    results = calculate_relative_performance(results)
    workspace.set_results(results)

    output = args.output
    if output is None and args.save:
        output = str(settings.get_results_path(args.suite))
    if output:
        save_json(dump_results(results), output)

    if args.json:
        print(json.dumps(dump_results(results), ensure_ascii=False, indent=2))
        return 0

    console.print(results_table(results))

    ranking = get_performance_ranking(results)
    if ranking:
        print_section(console, "Рейтинг")
        for place, result in enumerate(ranking, start=1):
            print_kv(console, str(place), f"{result.name} ({result.ops:,} ops/s)")
    if output:
        print_kv(console, "Результаты сохранены", output)
    console.print()
    return 0


def cmd_validate(args) -> int:
    """Проверить синтаксис сьюта и зависимости без запуска"""
    settings = get_settings()
    workspace = load_workspace(args.suite)
    failed = False

    print_section(console, f"Проверка: {args.suite}")

    setup_check = validate_setup_syntax(workspace.setup_code)
    if setup_check.is_valid:
        print_kv(console, "setup", "[green]OK[/green]")
    else:
        failed = True
        print_kv(console, "setup", f"[red]{setup_check.error}[/red]")

    for test_case in workspace.test_cases:
        check = validate_syntax(test_case.code, workspace.async_mode)
        if check.is_valid:
            print_kv(console, test_case.name, "[green]OK[/green]")
        else:
            failed = True
            print_kv(console, test_case.name, f"[red]{check.error}[/red]")

    deps_check = validate_dependencies(workspace.dependencies, settings.dependencies.allowed_schemes)
    if not deps_check.is_valid:
        failed = True
        for error in deps_check.errors:
            print_kv(console, "зависимость", f"[red]{error}[/red]")

    console.print()
    return 1 if failed else 0


def cmd_share(args) -> int:
    """Опубликовать сьют (и результаты) по ссылке"""
    settings = get_settings()
    workspace = load_workspace(args.suite)

    if args.results:
        workspace.set_results([BenchmarkResult.model_validate(r) for r in load_json(args.results)])

    service = ShareService.from_settings(settings)
    try:
        snapshot = service.create(workspace.to_snapshot(title=args.title), args.expiry)
    except InvalidExpiryError as e:
        console.print(f"[red]Ошибка: {e}[/red]")
        return 1

    print_section(console, "Снапшот опубликован")
    print_kv(console, "ID", snapshot.id)
    print_kv(console, "URL", service.url_for(snapshot.id))
    print_kv(console, "Срок", snapshot.expiry_option)
    console.print()
    return 0


def cmd_show(args) -> int:
    """Показать опубликованный снапшот"""
    service = ShareService.from_settings(get_settings())
    snapshot = service.get(args.share_id)
    if snapshot is None:
        console.print(f"[red]Снапшот не найден или истёк: {args.share_id}[/red]")
        return 1

    if args.json:
        print(snapshot.model_dump_json(by_alias=True, indent=2))
        return 0

    print_section(console, snapshot.title or f"Снапшот {snapshot.id}")
    print_kv(console, "Создан", snapshot.created_at)
    print_kv(console, "Срок", snapshot.expiry_option)
    print_kv(console, "Async", snapshot.async_mode)
    print_kv(console, "Зависимости", ", ".join(d.name for d in snapshot.dependencies) or "-")

    print_section(console, "Setup")
    console.print(snapshot.setup_code)
    for test_case in snapshot.test_cases:
        print_section(console, test_case.name)
        console.print(test_case.code)

    if snapshot.results:
        console.print(results_table(snapshot.results))
    console.print()
    return 0


def cmd_info(args) -> int:
    """Показать действующую конфигурацию"""
    settings = get_settings()

    print_section(console, "Конфигурация")
    for section in ("paths", "worker", "measurement", "dependencies", "share"):
        console.print(f"  [bold]{section}[/bold]")
        for key, value in getattr(settings, section).model_dump().items():
            print_kv(console, key, value, indent=4)
    console.print()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="SnippetBench CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры:
  %(prog)s run examples/benchmark.yaml              # Прогон сьюта
  %(prog)s run examples/benchmark.yaml --json       # Результаты в JSON
  %(prog)s validate examples/benchmark.yaml         # Проверка без запуска
  %(prog)s share examples/benchmark.yaml --expiry 7d
  %(prog)s show AbCdEf1234                          # Просмотр снапшота
  %(prog)s info                                     # Действующая конфигурация
        """
    )
    subparsers = parser.add_subparsers(dest="command", help="Команды")

    # run command
    run_parser = subparsers.add_parser("run", help="Прогнать сьют")
    run_parser.add_argument("suite", help="YAML файл сьюта")
    run_parser.add_argument("--async", dest="async_mode", action="store_true",
                           help="Компилировать сниппеты как async def")
    run_parser.add_argument("--json", action="store_true",
                           help="Вывести результаты в JSON")
    run_parser.add_argument("-o", "--output", metavar="PATH",
                           help="Сохранить результаты в JSON файл")
    run_parser.add_argument("--save", action="store_true",
                           help="Сохранить результаты в paths.results_dir")

    # validate command
    validate_parser = subparsers.add_parser("validate", help="Проверить сьют без запуска")
    validate_parser.add_argument("suite", help="YAML файл сьюта")

    # share command
    share_parser = subparsers.add_parser("share", help="Опубликовать сьют")
    share_parser.add_argument("suite", help="YAML файл сьюта")
    share_parser.add_argument("--title", help="Заголовок снапшота")
    share_parser.add_argument("--expiry", choices=["7d", "30d"],
                             help="Срок хранения (по умолчанию из настроек)")
    share_parser.add_argument("--results", metavar="PATH",
                             help="JSON с результатами (из run --output)")

    # show command
    show_parser = subparsers.add_parser("show", help="Показать снапшот")
    show_parser.add_argument("share_id", help="ID снапшота")
    show_parser.add_argument("--json", action="store_true",
                            help="Вывести снапшот в JSON")

    # info command
    subparsers.add_parser("info", help="Показать конфигурацию")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        return 0

    if args.command == "run":
        return asyncio.run(cmd_run(args))
    elif args.command == "validate":
        return cmd_validate(args)
    elif args.command == "share":
        return cmd_share(args)
    elif args.command == "show":
        return cmd_show(args)
    elif args.command == "info":
        return cmd_info(args)
    return 0


if __name__ == "__main__":
    sys.exit(main())
