"""Bounded exponential-backoff retries for notification delivery."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Iterator, Optional, TypeVar

from skillsync.domain.entities import (
    PENDING_EXPIRY_MS,
    DeliveryRequest,
    Notification,
    PendingDelivery,
)
from skillsync.infrastructure.local_queue import LocalDurableQueue

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]
Backoff = Callable[[float, int], float]
DeliverFn = Callable[[DeliveryRequest], Awaitable[Optional[Notification]]]


def exponential_backoff(initial_delay: float, attempt_index: int) -> float:
    """Return ``initial_delay * 2 ** attempt_index`` (no jitter)."""

    return initial_delay * (2 ** attempt_index)


@dataclass(frozen=True)
class RetryOutcome(Generic[T]):
    succeeded: bool
    attempts: int
    result: Optional[T] = None


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try, how long to wait in between, and what counts as success.

    Attempts run strictly one after another. After every failed attempt,
    including the last one, the policy sleeps for the backoff delay of that
    attempt, so ``max_attempts=3`` with one second of initial delay waits
    1, 2 and 4 seconds.
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    backoff: Backoff = exponential_backoff
    sleep: Sleep = asyncio.sleep

    def delay_for(self, attempt_index: int) -> float:
        return self.backoff(self.initial_delay, attempt_index)

    def delays(self) -> Iterator[float]:
        for attempt_index in range(self.max_attempts):
            yield self.delay_for(attempt_index)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        on_failure: Optional[Callable[[int], Any]] = None,
        is_success: Callable[[Optional[T]], bool] = bool,
    ) -> RetryOutcome[T]:
        for attempt_index in range(self.max_attempts):
            logger.debug("Attempt %s/%s", attempt_index + 1, self.max_attempts)
            try:
                result: Optional[T] = await operation()
            except Exception:
                logger.exception("Attempt %s failed", attempt_index + 1)
                result = None

            if is_success(result):
                return RetryOutcome(True, attempt_index + 1, result)

            if on_failure is not None:
                on_failure(attempt_index)
            await self.sleep(self.delay_for(attempt_index))

        return RetryOutcome(False, self.max_attempts)


@dataclass(frozen=True)
class PendingProcessResult:
    processed: int


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class RetryEngine:
    """Wrap a delivery primitive with retries tracked in the local durable queue.

    A pending record is written before the first attempt so the send survives
    a restart; it is removed on the first success and its ``retries`` counter
    grows after each failure. Success means the primitive returned a record,
    which can be the local fallback of the delivery client.
    """

    def __init__(
        self,
        deliver: DeliverFn,
        local_queue: LocalDurableQueue,
        *,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        pending_max_retries: int = 2,
        pending_expiry_ms: int = PENDING_EXPIRY_MS,
        sleep: Sleep = asyncio.sleep,
        clock_ms: Callable[[], int] = _epoch_millis,
    ) -> None:
        self._deliver = deliver
        self._local_queue = local_queue
        self._max_retries = max_retries
        self._initial_delay = initial_delay
        self._pending_max_retries = pending_max_retries
        self._pending_expiry_ms = pending_expiry_ms
        self._sleep = sleep
        self._clock_ms = clock_ms

    def policy(
        self, *, max_retries: int | None = None, initial_delay: float | None = None
    ) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self._max_retries if max_retries is None else max_retries,
            initial_delay=self._initial_delay if initial_delay is None else initial_delay,
            sleep=self._sleep,
        )

    async def retry_deliver(
        self,
        request: DeliveryRequest,
        *,
        max_retries: int | None = None,
        initial_delay: float | None = None,
        enqueue: bool = True,
    ) -> bool:
        """Deliver ``request`` with retries; return whether an attempt succeeded.

        With ``enqueue=False`` no new pending record is written and failures
        are counted on the records already describing ``request``.
        """

        try:
            if enqueue:
                self._local_queue.enqueue_pending(
                    PendingDelivery.for_request(request, timestamp=self._clock_ms())
                )
            policy = self.policy(max_retries=max_retries, initial_delay=initial_delay)
            outcome = await policy.run(
                lambda: self._deliver(request),
                on_failure=lambda _attempt: self._local_queue.increment_retries(request),
            )
        except Exception:
            logger.exception("Retry loop failed for notification to user %s", request.user_id)
            return False

        if outcome.succeeded:
            logger.info(
                "Notification for user %s delivered after %s attempt(s)",
                request.user_id,
                outcome.attempts,
            )
            self._local_queue.remove_pending(request)
        else:
            logger.warning(
                "Notification for user %s still pending after %s attempt(s)",
                request.user_id,
                outcome.attempts,
            )
        return outcome.succeeded

    async def process_pending_notifications(self) -> PendingProcessResult:
        """Re-drive every pending record younger than the expiry window.

        Records describing the same send are re-driven once, in place, so
        repeated runs never grow the queue. A send is echoed as a local
        notification unless one with the same content already exists, then
        retried with the reduced budget. Expired records stay in the queue and
        are not counted.
        """

        try:
            records = self._local_queue.list_pending()
            if not records:
                return PendingProcessResult(processed=0)

            logger.info("Processing %s pending notifications", len(records))
            now_ms = self._clock_ms()
            processed = 0
            requests: list[DeliveryRequest] = []
            for record in records:
                if record.is_expired(now_ms, self._pending_expiry_ms):
                    logger.info("Skipping expired pending notification for user %s", record.user_id)
                    continue
                processed += 1
                request = record.to_request()
                if request in requests:
                    continue
                requests.append(request)
                if not self._local_queue.has_local_notification(request):
                    self._local_queue.store_local_notification(
                        user_id=record.user_id,
                        type=record.type,
                        message=record.message,
                        reference_id=record.reference_id,
                    )

            if requests:
                await asyncio.gather(
                    *(
                        self.retry_deliver(
                            request, max_retries=self._pending_max_retries, enqueue=False
                        )
                        for request in requests
                    )
                )
            return PendingProcessResult(processed=processed)
        except Exception:
            logger.exception("Failed to process pending notifications")
            return PendingProcessResult(processed=0)


__all__ = [
    "PendingProcessResult",
    "RetryEngine",
    "RetryOutcome",
    "RetryPolicy",
    "exponential_backoff",
]
