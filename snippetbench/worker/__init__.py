"""
Worker — изолированный процесс-исполнитель

- RunManager: жизненный цикл процесса на стороне хоста
- worker_main: точка входа процесса-исполнителя
"""

from .manager import RunManager, get_run_manager, terminate_run_manager
from .runtime import handle_message, worker_main

__all__ = [
    "RunManager",
    "get_run_manager",
    "terminate_run_manager",
    "handle_message",
    "worker_main",
]
