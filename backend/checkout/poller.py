"""
Order status poller.

After a redirect-based payment the buyer lands back on the checkout with a
`source` marker in the query string. The order is settled by webhooks on
the server, so the page re-reads the order until it is paid or failed, or
until the deadline passes.

One poller runs at most one loop; each check is awaited before the next
one is scheduled, so two requests for the same order never overlap.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Protocol

from config import settings
from domain.constants import POLL_END_STATES
from exceptions import CheckoutError, PollTimeout
from models import Order, Source

logger = logging.getLogger(__name__)


class OrderStatusSource(Protocol):
    async def get_order_status(self, order_id: str) -> Order: ...


class OrderUpdateHandler(Protocol):
    async def handle(self, order: Order, source: Optional[Source], error=None): ...


class OrderStatusPoller:
    def __init__(
        self,
        store: OrderStatusSource,
        handler: OrderUpdateHandler,
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.handler = handler
        self.timeout = settings.poll_timeout_seconds if timeout is None else timeout
        self.interval = settings.poll_interval_seconds if interval is None else interval
        self._clock = clock
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.timed_out = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, order_id: str) -> Optional[Order]:
        """
        Poll until the order reaches paid/failed or the deadline passes.

        The deadline is measured from the first check. Returns the last
        order seen (None if every check failed).
        """
        start: Optional[float] = None
        order: Optional[Order] = None
        self.timed_out = False

        while True:
            if start is None:
                start = self._clock()

            try:
                order = await self.store.get_order_status(order_id)
            except CheckoutError as e:
                logger.warning(f"Order status check failed for {order_id}: {e.message}")
            else:
                await self.handler.handle(order, Source(status=None))
                if order.metadata_status in POLL_END_STATES:
                    logger.info(f"Order {order_id} settled: {order.metadata_status}")
                    return order

            if self._clock() >= start + self.timeout:
                self.timed_out = True
                logger.warning(str(PollTimeout(order_id, self.timeout)))
                return order

            await self._sleep(self.interval)

    def start(self, order_id: str) -> asyncio.Task:
        """Run the poll loop as a background task; joins the loop already running."""
        if self.running:
            logger.debug(f"Poller already running for {order_id}")
            return self._task
        self._task = asyncio.create_task(self.run(order_id))
        return self._task

    def cancel(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()

    async def stop(self) -> None:
        """Cancel the poll loop and wait for it to unwind."""
        task = self._task
        self.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
