"""Utilities for reporting job progress."""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import Any, Callable, Optional

from telegram.error import TelegramError

from distortion_modules.config import (
    logger,
    NOTIFIER_CLOSE_TIMEOUT_SECONDS,
    PROGRESS_INTERVAL_SECONDS,
)

WARMING_UP_MESSAGE = "Warming up..."
QUEUED_MESSAGE = "Queued..."
QUEUE_FULL_MESSAGE = "Sorry, the queue is full. Please try again later!"
DONE_MESSAGE = "Done!"
FAILURE_MESSAGE = "Sorry, something went wrong. Please try another file!"


class JobNotifier:
    """Fire-and-forget progress channel bound to one job.

    ``notify`` only puts the text into an outbox; a background task delivers
    queued texts one by one in submission order, so a slow or stuck transport
    never holds up the pipeline. Subclasses implement ``_deliver``/``_dispose``;
    the public methods never raise.
    """

    def __init__(
        self,
        job_id: str,
        *,
        close_timeout: Optional[float] = NOTIFIER_CLOSE_TIMEOUT_SECONDS,
    ) -> None:
        self.job_id = job_id
        self.close_timeout = close_timeout
        self._last_text: Optional[str] = None
        self._outbox: Optional["asyncio.Queue[str]"] = None
        self._sender: Optional[asyncio.Task] = None

    @property
    def last_text(self) -> Optional[str]:
        return self._last_text

    async def notify(self, text: str) -> None:
        """Queue ``text`` for delivery and return without waiting for it."""
        if text == self._last_text:
            return
        self._last_text = text
        if self._outbox is None:
            self._outbox = asyncio.Queue()
        self._outbox.put_nowait(text)
        if self._sender is None or self._sender.done():
            self._sender = asyncio.create_task(
                self._drain(self._outbox),
                name=f"job-notifier-{self.job_id}",
            )

    async def _drain(self, outbox: "asyncio.Queue[str]") -> None:
        while True:
            text = await outbox.get()
            try:
                await self._deliver(text)
            except Exception as exc:  # noqa: BLE001 - delivery is best effort
                logger.debug(
                    "Progress delivery failed",
                    extra={"job_id": self.job_id, "detail": text, "error": str(exc)},
                )
            finally:
                outbox.task_done()

    async def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait up to ``timeout`` for queued texts, then stop the sender.

        Returns ``False`` when undelivered texts had to be dropped. A later
        ``notify`` starts a new sender.
        """
        timeout = self.close_timeout if timeout is None else timeout
        sender, outbox = self._sender, self._outbox
        self._sender = None
        self._outbox = None
        if sender is None or outbox is None:
            return True

        delivered = True
        try:
            await asyncio.wait_for(outbox.join(), timeout)
        except asyncio.TimeoutError:
            delivered = False
            logger.warning(
                "Progress delivery timed out; pending updates dropped",
                extra={"job_id": self.job_id, "pending": outbox.qsize()},
            )
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
        return delivered

    async def close(self) -> None:
        """Flush pending texts, then release the channel (bounded by ``close_timeout``)."""
        await self.flush()
        try:
            await asyncio.wait_for(self._dispose(), self.close_timeout)
        except Exception as exc:  # noqa: BLE001 - delivery is best effort
            logger.debug(
                "Progress channel close failed",
                extra={"job_id": self.job_id, "error": str(exc)},
            )

    async def _deliver(self, text: str) -> None:
        raise NotImplementedError

    async def _dispose(self) -> None:
        return None


class LoggingNotifier(JobNotifier):
    """Notifier that only logs status messages."""

    async def _deliver(self, text: str) -> None:
        logger.info(
            "Job notification",
            extra={"job_id": self.job_id, "detail": text},
        )


class TelegramStatusNotifier(JobNotifier):
    """Edits a Telegram status message in place and deletes it at the end."""

    def __init__(
        self,
        job_id: str,
        bot: Any,
        chat_id: int,
        message_id: int,
        *,
        close_timeout: Optional[float] = NOTIFIER_CLOSE_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(job_id, close_timeout=close_timeout)
        self.bot = bot
        self.chat_id = chat_id
        self.message_id = message_id

    async def _deliver(self, text: str) -> None:
        try:
            await self.bot.edit_message_text(
                text=text,
                chat_id=self.chat_id,
                message_id=self.message_id,
            )
        except TelegramError as exc:
            # Сообщение могли удалить или оно не изменилось
            logger.debug(
                "Status message edit skipped",
                extra={"job_id": self.job_id, "error": str(exc)},
            )

    async def _dispose(self) -> None:
        try:
            await self.bot.delete_message(chat_id=self.chat_id, message_id=self.message_id)
        except TelegramError as exc:
            logger.debug(
                "Status message delete skipped",
                extra={"job_id": self.job_id, "error": str(exc)},
            )


class ProgressThrottle:
    """Rate limiter for progress events emitted inside a long stage."""

    def __init__(
        self,
        notifier: JobNotifier,
        *,
        interval: float = PROGRESS_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.notifier = notifier
        self.interval = max(0.0, float(interval))
        self._clock = clock
        self._last_emit: Optional[float] = None

    def due(self) -> bool:
        if self._last_emit is None:
            return True
        return self._clock() - self._last_emit >= self.interval

    async def maybe_notify(self, text: str) -> bool:
        """Emit ``text`` if the interval has elapsed since the last emission."""
        if not self.due():
            return False
        self._last_emit = self._clock()
        await self.notifier.notify(text)
        return True


__all__ = [
    "JobNotifier",
    "LoggingNotifier",
    "TelegramStatusNotifier",
    "ProgressThrottle",
    "WARMING_UP_MESSAGE",
    "QUEUED_MESSAGE",
    "QUEUE_FULL_MESSAGE",
    "DONE_MESSAGE",
    "FAILURE_MESSAGE",
]
