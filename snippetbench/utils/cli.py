"""
cli utilities - форматирование cli вывода (rich)
"""

from typing import Iterable, List, Optional

from rich.console import Console
from rich.table import Table

from ..schemas import BenchmarkResult


def print_section(console: Console, title: str) -> None:
    """Вывести заголовок секции"""
    console.print()
    console.rule(f"[bold]{title}[/bold]")


def print_kv(console: Console, label: str, value: object, indent: int = 2) -> None:
    """Вывести пару ключ-значение с выравниванием"""
    console.print(" " * indent + f"[dim]{label}:[/dim] {value}")


def format_us(value: Optional[float]) -> str:
    """Время в микросекундах для таблицы"""
    if value is None:
        return "-"
    if value >= 1000:
        return f"{value / 1000:.2f} ms"
    return f"{value:.3f} µs"


def format_ops(value: Optional[int]) -> str:
    """Операции в секунду с разделителями тысяч"""
    if value is None:
        return "-"
    return f"{value:,}".replace(",", " ")


def results_table(results: Iterable[BenchmarkResult], title: str = "Результаты") -> Table:
    """
    Построить таблицу результатов

    Args:
        results: Результаты в порядке отображения
        title: Заголовок таблицы

    Returns:
        rich Table: name, avg, p75, p99, ops/s, %, флаги
    """
    table = Table(title=title)
    table.add_column("Тест-кейс", style="cyan")
    table.add_column("avg", justify="right")
    table.add_column("p75", justify="right")
    table.add_column("p99", justify="right")
    table.add_column("ops/s", justify="right", style="green")
    table.add_column("%", justify="right")
    table.add_column("Примечание")

    for result in results:
        if result.is_error:
            table.add_row(result.name, "-", "-", "-", "-", "-", f"[red]{result.error}[/red]")
            continue

        flags: List[str] = []
        if result.optimized_out:
            flags.append("[yellow]оптимизировано?[/yellow]")
        relative = "-" if result.relative_performance is None else f"{result.relative_performance:.1f}"
        table.add_row(
            result.name,
            format_us(result.avg),
            format_us(result.p75),
            format_us(result.p99),
            format_ops(result.ops),
            relative,
            " ".join(flags),
        )

    return table
