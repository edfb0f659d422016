"""
RunManager — жизненный цикл процесса-исполнителя на стороне хоста

Ответственность:
- Запуск процесса-исполнителя (multiprocessing, две очереди)
- Не более одного прогона одновременно
- Доставка прогресса и результата в event loop вызывающего
- Обнаружение падения процесса
- Принудительная остановка (terminate → kill) и перезапуск

Поток-слушатель читает исходящую очередь и передаёт сообщения
в event loop через call_soon_threadsafe, поэтому callback прогресса
всегда вызывается в потоке вызывающего.

Использование:
    manager = get_run_manager()
    results = await manager.run(test_cases, setup_code, on_progress=print)
    terminate_run_manager()
"""

import asyncio
import inspect
import logging
import multiprocessing
import queue
import threading
from typing import Any, Callable, List, Optional, Sequence

from pydantic import ValidationError

from ..config.settings import Settings, get_settings
from ..core.errors import (
    BenchmarkError,
    ConcurrencyError,
    RunCancelledError,
    UnavailableError,
)
from ..schemas import (
    BenchmarkResult,
    CompleteMessage,
    Dependency,
    ProgressEvent,
    ProgressMessage,
    RunBenchmarkMessage,
    TestCase,
    encode_message,
    parse_worker_response,
)
from .runtime import worker_main


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], Any]


class RunManager:
    """
    Менеджер процесса-исполнителя

    Остановленный процесс не переиспользуется: после terminate()
    менеджер недоступен до вызова restart().

    Example:
        manager = RunManager()
        results = await manager.run([TestCase(id="1", name="sum", code="sum(GLOBAL)")],
                                    setup_code="return list(range(1000))")
        manager.close()
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Args:
            settings: Настройки (если None — get_settings())
        """
        self._settings = settings or get_settings()
        self._ctx = multiprocessing.get_context(self._settings.worker.start_method)

        self._process = None
        self._inbox = None
        self._outbox = None
        self._listener: Optional[threading.Thread] = None
        self._stop_listener = threading.Event()

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Optional[asyncio.Future] = None
        self._on_progress: Optional[ProgressCallback] = None
        self._available = False

        self._start_worker()

    # =========================================================================
    # Жизненный цикл процесса
    # =========================================================================

    def _start_worker(self) -> None:
        """
        Запустить новый процесс-исполнитель и поток-слушатель

        Если процесс не удалось создать, менеджер остаётся недоступным:
        run() завершится UnavailableError.
        """
        try:
            self._inbox = self._ctx.Queue()
            self._outbox = self._ctx.Queue()

            self._process = self._ctx.Process(
                target=worker_main,
                args=(self._inbox, self._outbox, self._settings.model_dump(mode="json")),
                name="snippetbench-worker",
                daemon=True,
            )
            self._process.start()
        except Exception as e:
            logger.error(f"Не удалось запустить процесс-исполнитель: {e}")
            self._close_queues()
            self._process = None
            self._inbox = None
            self._outbox = None
            self._listener = None
            self._available = False
            return

        self._stop_listener = threading.Event()
        self._listener = threading.Thread(
            target=self._listen,
            args=(self._process, self._outbox, self._stop_listener),
            name="snippetbench-listener",
            daemon=True,
        )
        self._listener.start()
        self._available = True

        logger.info(f"Процесс-исполнитель запущен (pid={self._process.pid})")

    @property
    def is_available(self) -> bool:
        """Можно ли запускать прогон"""
        return self._available and self._process is not None and self._process.is_alive()

    @property
    def is_running(self) -> bool:
        """Есть ли незавершённый прогон"""
        return self._pending is not None and not self._pending.done()

    def terminate(self) -> None:
        """
        Принудительно остановить процесс-исполнитель

        SIGTERM, затем SIGKILL после grace-периода. Незавершённый прогон
        отклоняется с RunCancelledError, callback прогресса сбрасывается.
        """
        self._available = False
        self._stop_listener.set()

        process = self._process
        grace = self._settings.worker.terminate_grace_seconds
        if process is not None and process.is_alive():
            process.terminate()
            process.join(grace)
            if process.is_alive():
                logger.warning(f"Процесс-исполнитель pid={process.pid} не завершился, kill")
                process.kill()
                process.join(grace)

        self._join_listener()
        self._close_queues()

        future = self._pending
        self._pending = None
        self._on_progress = None
        if future is not None:
            self._reject(future, RunCancelledError("Процесс-исполнитель остановлен"))

        logger.info("Процесс-исполнитель остановлен")

    async def _terminate_in_thread(self) -> None:
        """terminate() без блокировки event loop (ожидание grace-периода и join)"""
        self._available = False
        await asyncio.to_thread(self.terminate)

    def restart(self) -> None:
        """Остановить текущий процесс (если есть) и запустить новый"""
        self.terminate()
        self._start_worker()

    def close(self) -> None:
        """Штатно остановить процесс-исполнитель (без прогона в работе)"""
        if self.is_running:
            self.terminate()
            return

        process = self._process
        if process is not None and process.is_alive():
            self._inbox.put(None)
            process.join(self._settings.worker.terminate_grace_seconds * 4)
        self.terminate()

    def _join_listener(self) -> None:
        listener = self._listener
        if listener is not None and listener is not threading.current_thread():
            listener.join(self._settings.worker.poll_interval_seconds * 4 + 1)
        self._listener = None

    def _close_queues(self) -> None:
        for q in (self._inbox, self._outbox):
            if q is not None:
                q.cancel_join_thread()
                q.close()

    # =========================================================================
    # Прогон
    # =========================================================================

    async def run(
        self,
        test_cases: Sequence[TestCase],
        setup_code: str = "",
        async_mode: bool = False,
        dependencies: Optional[Sequence[Dependency]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[BenchmarkResult]:
        """
        Выполнить прогон в процессе-исполнителе

        Args:
            test_cases: Тест-кейсы
            setup_code: Общий setup-код (его return — GLOBAL)
            async_mode: Сниппеты как async def
            dependencies: Зависимости
            on_progress: Callback прогресса (sync или async)

        Returns:
            Список BenchmarkResult

        Raises:
            UnavailableError: Процесс недоступен или упал во время прогона
            RunCancelledError: Прогон прерван terminate() или таймаутом
            ConcurrencyError: Предыдущий прогон ещё выполняется
            BenchmarkError: Прогон провален (BENCHMARK_ERROR)
        """
        if not self.is_available:
            raise UnavailableError("Процесс-исполнитель недоступен")
        if self.is_running:
            raise ConcurrencyError("Бенчмарк уже выполняется")

        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._loop = loop
        self._pending = future
        self._on_progress = on_progress

        request = RunBenchmarkMessage(
            test_cases=list(test_cases),
            setup_code=setup_code,
            async_mode=async_mode,
            dependencies=list(dependencies or []),
        )
        self._inbox.put(encode_message(request))

        timeout = self._settings.worker.run_timeout_seconds or None
        try:
            if timeout is None:
                return await future
            return await asyncio.wait_for(asyncio.shield(future), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Прогон превысил таймаут {timeout}с")
            self._pending = None
            future.cancel()
            await self._terminate_in_thread()
            raise RunCancelledError(f"Прогон превысил таймаут {timeout}с") from None
        except asyncio.CancelledError:
            # Исполнитель нельзя прервать кооперативно: остаток прогона пришёл бы в следующий
            if self._pending is future:
                self._pending = None
                future.cancel()
                await self._terminate_in_thread()
            raise
        finally:
            if self._pending is future:
                self._pending = None
                self._on_progress = None

    # =========================================================================
    # Поток-слушатель и доставка сообщений
    # =========================================================================

    def _listen(self, process, outbox, stop: threading.Event) -> None:
        """Читать outbox до остановки или смерти процесса (отдельный поток)"""
        poll = self._settings.worker.poll_interval_seconds
        while not stop.is_set():
            try:
                data = outbox.get(timeout=poll)
            except queue.Empty:
                if not process.is_alive():
                    self._report_exit(process)
                    return
                continue
            except (EOFError, OSError) as e:
                logger.debug(f"Очередь исполнителя закрыта: {e}")
                self._report_exit(process)
                return
            self._call_in_loop(self._dispatch, data)

    def _call_in_loop(self, callback: Callable[..., None], *args: Any) -> bool:
        """Передать вызов в event loop вызывающего; False если loop ещё нет"""
        loop = self._loop
        if loop is None or loop.is_closed():
            return False
        loop.call_soon_threadsafe(callback, *args)
        return True

    def _report_exit(self, process) -> None:
        if not self._call_in_loop(self._on_worker_exit, process):
            self._on_worker_exit(process)

    def _on_worker_exit(self, process) -> None:
        if process is not self._process or self._stop_listener.is_set():
            return

        logger.error(f"Процесс-исполнитель завершился (exitcode={process.exitcode})")
        self._available = False

        future = self._pending
        self._pending = None
        self._on_progress = None
        if future is not None:
            self._reject(future, UnavailableError(
                f"Процесс-исполнитель завершился во время прогона (exitcode={process.exitcode})"
            ))

    def _dispatch(self, data: Any) -> None:
        """Обработать сообщение исполнителя (в event loop)"""
        future = self._pending
        if future is None or future.done():
            logger.debug("Сообщение без активного прогона проигнорировано")
            return

        try:
            message = parse_worker_response(data)
        except ValidationError as e:
            future.set_exception(BenchmarkError(f"Некорректный ответ исполнителя: {e}"))
            return

        if isinstance(message, ProgressMessage):
            self._notify_progress(message.progress)
        elif isinstance(message, CompleteMessage):
            future.set_result(message.results)
        else:
            future.set_exception(BenchmarkError(message.error))

    def _notify_progress(self, event: ProgressEvent) -> None:
        callback = self._on_progress
        if callback is None:
            return
        try:
            outcome = callback(event)
            if inspect.isawaitable(outcome):
                asyncio.ensure_future(outcome)
        except Exception:
            logger.exception("Ошибка в callback прогресса")

    @staticmethod
    def _reject(future: asyncio.Future, error: BaseException) -> None:
        """Отклонить future из любого потока"""
        if future.done():
            return
        loop = future.get_loop()
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            future.set_exception(error)
        elif not loop.is_closed():
            loop.call_soon_threadsafe(RunManager._reject, future, error)


# =============================================================================
# Singleton
# =============================================================================

_manager: Optional[RunManager] = None


def get_run_manager(settings: Optional[Settings] = None) -> RunManager:
    """Получить общий RunManager (создаётся при первом вызове)"""
    global _manager
    if _manager is None:
        _manager = RunManager(settings)
    return _manager


def terminate_run_manager() -> None:
    """Остановить общий RunManager и сбросить singleton"""
    global _manager
    if _manager is not None:
        _manager.terminate()
        _manager = None
