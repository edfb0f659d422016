"""
Worker Runtime — цикл сообщений процесса-исполнителя

Процесс-исполнитель:
1. Восстанавливает Settings из словаря и настраивает логирование
2. Читает входящие сообщения из inbox
3. RUN_BENCHMARK → прогон через BenchmarkOrchestrator
4. Пишет BENCHMARK_PROGRESS / BENCHMARK_COMPLETE / BENCHMARK_ERROR в outbox

Сообщения неизвестного типа игнорируются. None в inbox останавливает цикл.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from ..config import settings_from_dump, setup_logging
from ..core.orchestrator import BenchmarkOrchestrator
from ..schemas import (
    CompleteMessage,
    ErrorMessage,
    ProgressEvent,
    ProgressMessage,
    encode_message,
    parse_run_request,
)
from ..schemas.messages import RUN_BENCHMARK


logger = logging.getLogger(__name__)

Send = Callable[[Dict[str, Any]], None]


async def handle_message(data: Any, orchestrator: BenchmarkOrchestrator, send: Send) -> None:
    """
    Обработать одно входящее сообщение

    Любое исключение прогона превращается в BENCHMARK_ERROR с его текстом.

    Args:
        data: Словарь сообщения
        orchestrator: Оркестратор процесса
        send: Отправка закодированного ответа
    """
    if not isinstance(data, dict) or data.get("type") != RUN_BENCHMARK:
        logger.debug(f"Сообщение проигнорировано: {data!r:.100}")
        return

    try:
        request = parse_run_request(data)
    except ValidationError as e:
        send(encode_message(ErrorMessage(error=f"Некорректный запрос: {e}")))
        return

    def on_progress(event: ProgressEvent) -> None:
        send(encode_message(ProgressMessage(progress=event)))

    logger.info(f"Прогон: {len(request.test_cases)} тест-кейсов, async={request.async_mode}")

    try:
        results = await orchestrator.run(request, on_progress)
    except Exception as e:
        logger.error(f"Прогон провален: {e}")
        send(encode_message(ErrorMessage(error=str(e) or type(e).__name__)))
        return

    send(encode_message(CompleteMessage(results=results)))


async def serve(inbox, outbox, orchestrator: BenchmarkOrchestrator) -> None:
    """Читать inbox до получения None"""
    while True:
        data = await asyncio.to_thread(inbox.get)
        if data is None:
            logger.debug("Получен сигнал остановки")
            return
        await handle_message(data, orchestrator, outbox.put)


def worker_main(inbox, outbox, settings_data: Optional[dict] = None) -> None:
    """
    Точка входа процесса-исполнителя

    Args:
        inbox: Очередь входящих сообщений (хост → исполнитель)
        outbox: Очередь исходящих сообщений (исполнитель → хост)
        settings_data: Settings.model_dump() основного процесса
    """
    settings = settings_from_dump(settings_data)
    # Процесс запускается через spawn и не наследует обработчики логов
    setup_logging(settings, file_enabled=False)

    orchestrator = BenchmarkOrchestrator.from_settings(settings)
    logger.debug("Процесс-исполнитель запущен")

    asyncio.run(serve(inbox, outbox, orchestrator))
