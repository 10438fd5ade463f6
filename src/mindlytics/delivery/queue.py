"""
Module: delivery/queue.py
Description: Ordered, retrying delivery queue for outbound events.

Items go through one FIFO channel consumed by a single worker task, so
exactly one request is in flight at any time and items reach the
service in submission order. An item that fails with a transient status
is retried in place, holding the worker, before the next item starts.
Permanent failures are collected and handed back by flush(); nothing
about an individual delivery is ever raised to the caller.

Key Components:
- EventQueue.enqueue(): submit an item and wait until it is processed
- EventQueue.submit(): submit an item without waiting for delivery
- EventQueue.flush(): wait for the queue to drain, return failures
- EventQueue.close(): stop the worker and abandon queued items

Dependencies: asyncio, tenacity (via delivery.retry), structlog
Author: Mindlytics SDK Team
"""

import asyncio
import contextlib
from typing import List, Optional, Tuple

from tenacity import RetryCallState

from mindlytics.config.settings import QueueSettings
from mindlytics.delivery.retry import SleepFn, build_retrying
from mindlytics.delivery.transport import Transport, TransportResult
from mindlytics.models.queue import QueueError, QueueItem
from mindlytics.utils.logger import get_logger

# Code recorded when the transport raises instead of returning a response
TRANSPORT_ERROR_CODE = 500


class _TransportFailure(Exception):
    """Raised from an attempt when the transport itself raised."""

    def __init__(self, cause: Exception):
        super().__init__(str(cause) or type(cause).__name__)
        self.cause = cause


_Entry = Tuple[QueueItem, "asyncio.Future[None]"]


class EventQueue:
    """
    Sequential delivery queue with retry and error accumulation.

    Attributes:
        options: Queue settings (backoff base, retry limit, size, debug)

    Example:
        >>> queue = EventQueue(transport, QueueSettings(max_retries=3))
        >>> await queue.enqueue(QueueItem(path="/bc/v1/events/event/track", body=body))
        >>> errors = await queue.flush()
    """

    def __init__(
        self,
        transport: Transport,
        options: Optional[QueueSettings] = None,
        sleep: SleepFn = asyncio.sleep
    ):
        """
        Initialize the queue.

        Args:
            transport: Transport used to POST each item
            options: Queue settings, defaults to QueueSettings()
            sleep: Async sleep used for retry waits
        """
        self._transport = transport
        self.options = options or QueueSettings()
        self._sleep = sleep
        self._logger = get_logger(
            __name__,
            debug=self.options.debug,
            component="EventQueue"
        )
        self._channel: "asyncio.Queue[_Entry]" = asyncio.Queue(
            maxsize=self.options.max_queue_size
        )
        self._worker: Optional[asyncio.Task] = None
        self._errors: List[QueueError] = []
        self._pending = 0

    @property
    def pending(self) -> int:
        """Items queued or in flight."""
        return self._pending

    async def submit(self, item: QueueItem) -> "asyncio.Future[None]":
        """
        Accept an item for delivery without waiting for it to be sent.

        Waits only for channel capacity when max_queue_size is set.

        Args:
            item: Item to deliver

        Returns:
            Future resolved once the item's processing has finished
        """
        self._ensure_worker()
        done = asyncio.get_running_loop().create_future()

        self._pending += 1
        try:
            await self._channel.put((item, done))
        except BaseException:
            self._pending -= 1
            raise

        self._logger.debug("Item enqueued", path=item.path, pending=self._pending)
        return done

    async def enqueue(self, item: QueueItem) -> None:
        """
        Deliver an item, waiting until its processing completes.

        Returns after success, after a permanent failure has been recorded,
        or after retries are exhausted. Never raises for delivery failures.

        Args:
            item: Item to deliver
        """
        done = await self.submit(item)
        await done

    async def flush(self) -> List[QueueError]:
        """
        Wait until no items are queued or in flight.

        Returns:
            Permanent failures recorded since the previous flush
        """
        await self._channel.join()
        errors, self._errors = self._errors, []
        self._logger.debug("Queue flushed", errors=len(errors))
        return errors

    async def close(self) -> None:
        """Stop the worker. Items still waiting are dropped without being sent."""
        worker, self._worker = self._worker, None
        if worker is not None and not worker.done():
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker

        while not self._channel.empty():
            item, done = self._channel.get_nowait()
            self._logger.debug("Item abandoned on close", path=item.path)
            self._finish(done)

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(
                self._run(),
                name="mindlytics-event-queue"
            )

    async def _run(self) -> None:
        while True:
            item, done = await self._channel.get()
            try:
                await self._process(item)
            except Exception:
                self._logger.error(
                    "Unexpected error processing request",
                    path=item.path,
                    exc_info=True
                )
            finally:
                self._finish(done)

    def _finish(self, done: "asyncio.Future[None]") -> None:
        self._pending -= 1
        if not done.done():
            done.set_result(None)
        self._channel.task_done()

    async def _process(self, item: QueueItem) -> None:
        """Send one item, retrying transient failures in place."""
        self._logger.debug(
            "Processing request",
            path=item.path,
            body=item.body,
            params=item.params
        )

        attempts = 0

        async def send() -> TransportResult:
            nonlocal attempts
            attempts += 1
            self._logger.debug("Attempting delivery", path=item.path, attempt=attempts)
            try:
                return await self._transport.post(item.path, item.body, item.params)
            except Exception as e:
                raise _TransportFailure(e) from e

        retrying = build_retrying(
            max_retries=self.options.max_retries,
            base_delay_ms=self.options.base_delay_ms,
            sleep=self._sleep,
            before_sleep=lambda retry_state: self._before_retry(item, retry_state)
        )

        try:
            result = await retrying(send)
        except _TransportFailure as e:
            self._record(
                item,
                f"Error thrown processing request to {item.path}: {e}",
                TRANSPORT_ERROR_CODE
            )
            return

        if result.success:
            self._logger.debug("Request delivered", path=item.path, attempts=attempts)
            return

        status = f"{result.status} {result.status_text}".rstrip()
        if attempts >= self.options.max_retries:
            message = f"Max retries reached for request to {item.path}: {status}"
        else:
            message = f"Non-retryable error processing request to {item.path}: {status}"
        self._record(item, message, result.status)

    def _before_retry(self, item: QueueItem, retry_state: RetryCallState) -> None:
        item.retries += 1
        result = retry_state.outcome.result()
        self._logger.debug(
            "Retrying request",
            path=item.path,
            status_code=result.status,
            status_text=result.status_text,
            delay_ms=retry_state.next_action.sleep * 1000,
            attempt=retry_state.attempt_number,
            max_retries=self.options.max_retries
        )

    def _record(self, item: QueueItem, message: str, code: int) -> None:
        self._logger.debug("Dropping request", path=item.path, error=message, code=code)
        self._errors.append(QueueError(item=item, error=message, code=code))
