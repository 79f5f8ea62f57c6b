"""Re-drive pending notifications on startup, reconnection and a timer."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from skillsync.infrastructure.local_queue import LocalDurableQueue
from skillsync.infrastructure.notifications import NETWORK_ONLINE, EventBus

from .retry import PendingProcessResult, RetryEngine

logger = logging.getLogger(__name__)


class PendingDeliveryMonitor:
    """Trigger :meth:`RetryEngine.process_pending_notifications`.

    Processing runs when the monitor starts, whenever connectivity goes from
    offline to online, and on every tick of a periodic check that only does
    work while online with pending records in the queue.
    """

    def __init__(
        self,
        engine: RetryEngine,
        local_queue: LocalDurableQueue,
        *,
        event_bus: Optional[EventBus] = None,
        check_interval: float = 60.0,
        online: bool = True,
    ) -> None:
        self._engine = engine
        self._local_queue = local_queue
        self._event_bus = event_bus
        self._check_interval = check_interval
        self._online = online
        self._timer: Optional[asyncio.Task[None]] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._runs: set[asyncio.Task[PendingProcessResult]] = set()

    @property
    def online(self) -> bool:
        return self._online

    @property
    def running(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        if self._timer is not None:
            return
        if self._event_bus is not None:
            self._unsubscribe = self._event_bus.subscribe(
                NETWORK_ONLINE, lambda _payload: self.set_online(True)
            )
        self._timer = asyncio.get_running_loop().create_task(self._periodic_check())
        self._schedule_processing()

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        tasks = list(self._runs)
        if self._timer is not None:
            tasks.append(self._timer)
            self._timer = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._runs.clear()

    def set_online(self, online: bool) -> None:
        """Record connectivity; an offline to online transition processes the queue."""

        restored = online and not self._online
        self._online = online
        if restored:
            logger.info("Network connection restored - checking for pending notifications")
            self._schedule_processing()

    async def wait_idle(self) -> None:
        """Wait for processing runs scheduled so far."""

        if self._runs:
            await asyncio.gather(*list(self._runs), return_exceptions=True)

    def _schedule_processing(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; pending notifications not processed")
            return
        task = loop.create_task(self._engine.process_pending_notifications())
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)

    async def _periodic_check(self) -> None:
        while True:
            await asyncio.sleep(self._check_interval)
            if not self._online:
                continue
            if self._local_queue.has_pending():
                logger.info("Found pending notifications - attempting to send")
                self._schedule_processing()


__all__ = ["PendingDeliveryMonitor"]
