# app/transport/telegram_polling.py
"""
Telegram Bot API long-polling loop.

Alternative to webhook mode. Calls getUpdates in a loop with long-polling.
Simpler ops (no public URL or SSL required).

Usage:
    poller = TelegramPoller(engine=engine, transport=transport)
    await poller.start()
    # ... on shutdown:
    await poller.stop()
"""
from __future__ import annotations

import asyncio

from app.core.engine.use_cases import OnboardingEngine
from app.transport.adapters import TelegramAdapter
from app.transport.telegram_sender import TelegramSendError, TelegramTransport
from app.infra.logging_config import get_logger, LogContext

logger = get_logger(__name__)

MAX_BACKOFF = 30


def _log_task_exception(task: asyncio.Task) -> None:
    """Done-callback: log unhandled exceptions from update tasks."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "Update task %r failed: %s", task.get_name(), exc,
            exc_info=(type(exc), exc, exc.__traceback__),
        )


class TelegramPoller:
    """
    Long-polling loop for receiving Telegram updates.

    Each update is handled in its own task so a slow collaborator call for
    one user does not hold up the others; the engine serializes messages of
    the same user.

    Error handling:
    - On API errors: exponential backoff (1s → 2s → 4s → ... → 30s max)
    - On processing errors: logged by the task callback, offset still advances
    - On cancellation: graceful shutdown
    """

    def __init__(
        self,
        engine: OnboardingEngine,
        transport: TelegramTransport,
        poll_timeout: int = 30,
    ):
        self.engine = engine
        self.transport = transport
        self.poll_timeout = poll_timeout
        self._adapter = TelegramAdapter()
        self._task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self._offset: int | None = None
        self._running = False
        self._backoff = 1

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the polling loop as a background task."""
        if self._running:
            logger.warning("Telegram poller already running")
            return

        try:
            await self.transport.delete_webhook()
            logger.info("Telegram webhook removed (polling mode)")
        except TelegramSendError as e:
            logger.warning("Could not delete Telegram webhook: %s", e)

        self._running = True
        self._task = asyncio.create_task(self._poll_loop(), name="tg_poller")
        logger.info("Telegram poller started (timeout=%ss)", self.poll_timeout)

    async def stop(self) -> None:
        """Stop polling and wait for in-flight updates."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                logger.debug("Telegram poll loop cancelled")
        self._task = None

        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        logger.info("Telegram poller stopped")

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                updates = await self.transport.get_updates(offset=self._offset, timeout=self.poll_timeout)
                self._backoff = 1

                for update in updates:
                    self._offset = update.get("update_id", 0) + 1
                    self.dispatch(update)

            except TelegramSendError as e:
                if not self._running:
                    break
                logger.error("Telegram polling error: %s, backing off %ss", e, self._backoff)
                await asyncio.sleep(self._backoff)
                self._backoff = min(self._backoff * 2, MAX_BACKOFF)

            except Exception as e:
                if not self._running:
                    break
                logger.error("Telegram polling unexpected error: %s", e, exc_info=True)
                await asyncio.sleep(self._backoff)
                self._backoff = min(self._backoff * 2, MAX_BACKOFF)

    def dispatch(self, update: dict) -> list[asyncio.Task]:
        """Start one task per message in *update*."""
        tasks = []
        for message in self._adapter.adapt_update(update):
            task = asyncio.create_task(
                self._handle(message),
                name=f"tg_update_{message.chat_id}_{message.message_id}",
            )
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            task.add_done_callback(_log_task_exception)
            tasks.append(task)
        return tasks

    async def _handle(self, message) -> None:
        log_ctx = LogContext(logger, user_id=message.user_id, chat_id=message.chat_id)
        result = await self.engine.process_inbound_message(message)
        log_ctx.debug("Telegram update processed: step=%s", result["step"])
