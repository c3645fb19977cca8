"""One long-lived SSE subscription per theater binding.

State machine::

    IDLE -> CONNECTING -> STREAMING -> BACKOFF -> CONNECTING -> ...

The retry counter resets whenever a 2xx response's headers arrive. Each
failed or ended connection waits ``retryDelay`` and bumps the counter; when
the counter reaches a multiple of ``reloginEvery`` the subscriber asks its
supervisor for a full re-login and exits.

Order events are queued to a single receipt worker per binding, so a slow
print never stalls the stream and receipts still print in arrival order.
"""
from __future__ import annotations

import asyncio
import enum
from collections.abc import Callable
from typing import TYPE_CHECKING, Final

import httpx
from loguru import logger

from posagent.engine.backend import BackendClient, describeError
from posagent.engine.errors import StreamError
from posagent.engine.events import Connected, PosOrder, SSEFramer, parseEvent

if TYPE_CHECKING:
    from posagent.engine.dispatcher import OrderDispatcher
    from posagent.engine.resolver import TheaterBinding

RETRY_DELAY: Final = 5.0

# 50 retries at 5 s each is roughly four minutes of a dead backend
RELOGIN_EVERY: Final = 50


class SubscriberState(enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    BACKOFF = "backoff"
    STOPPED = "stopped"


class StreamSubscriber:
    """Holds ``/api/pos-stream/<theaterId>`` open for one binding.

    Parameters
    ----------
    backend:
        Shared backend client.
    binding:
        The (session, theater) pair this subscriber exclusively owns.
    dispatcher:
        Receives every ``PosOrder`` event, one at a time.
    requestRelogin:
        Called with this subscriber when the retry threshold is reached.
    """

    def __init__(
        self,
        backend: BackendClient,
        binding: TheaterBinding,
        dispatcher: OrderDispatcher,
        requestRelogin: Callable[[StreamSubscriber], None],
        retryDelay: float = RETRY_DELAY,
        reloginEvery: int = RELOGIN_EVERY,
    ):
        self.backend = backend
        self.binding = binding
        self.dispatcher = dispatcher
        self.requestRelogin = requestRelogin
        self.retryDelay = retryDelay
        self.reloginEvery = reloginEvery

        self.state = SubscriberState.IDLE
        self.retries = 0
        self.queue: asyncio.Queue[PosOrder] = asyncio.Queue()

    @property
    def label(self) -> str:
        return self.binding.label

    async def run(self) -> None:
        """Stream until a re-login is requested or the task is cancelled."""
        worker = asyncio.create_task(self.receiptWorker(), name=f"receipts {self.label}")
        try:
            await self.streamForever()
        finally:
            self.state = SubscriberState.STOPPED
            worker.cancel()
            await asyncio.gather(worker, return_exceptions=True)

    async def streamForever(self) -> None:
        label = self.label
        while True:
            if self.retries == 0:
                logger.info("[{}] Connecting to SSE stream...", label)
            else:
                logger.info("[{}] Reconnecting... (attempt {})", label, self.retries)

                if self.retries % self.reloginEvery == 0:
                    logger.warning(
                        "[{}] WARNING: Too many reconnection attempts ({}). Backend may be down.",
                        label,
                        self.retries,
                    )
                    self.requestRelogin(self)
                    return

            self.state = SubscriberState.CONNECTING
            try:
                await self.consume()
                logger.warning(
                    "[{}] Connection closed. Reconnecting in {}s...", label, self.retryDelay
                )
            except (httpx.HTTPError, StreamError) as e:
                logger.error(
                    "[{}] Connection error: {}. Retrying in {}s...",
                    label,
                    describeError(e),
                    self.retryDelay,
                )
            except Exception:
                logger.exception("[{}] Stream failed unexpectedly", label)

            self.state = SubscriberState.BACKOFF
            await asyncio.sleep(self.retryDelay)
            self.retries += 1

    async def consume(self) -> None:
        """Open the stream once and route events until it ends."""
        framer = SSEFramer()
        binding = self.binding

        async with self.backend.openStream(binding.session, binding.theaterId) as response:
            # a refused stream never counted as connected, so it keeps counting toward re-login
            if not response.is_success:
                raise StreamError(f"stream refused with HTTP {response.status_code}")

            logger.info("[{}] SSE Connected! Status: {}", self.label, response.status_code)
            self.retries = 0
            self.state = SubscriberState.STREAMING

            async for chunk in response.aiter_bytes():
                for text in framer.feed(chunk):
                    self.route(text)

    def route(self, text: str) -> None:
        label = self.label
        try:
            event = parseEvent(text)
        except ValueError as e:
            logger.warning("[{}] Parse error: {}", label, e)
            return

        match event:
            case Connected():
                logger.info("[{}] Connection confirmed by server", label)
            case PosOrder():
                logger.info("[{}] Received POS order: {} ({})", label, event.orderId, event.event)
                self.queue.put_nowait(event)
            case _:
                logger.debug("[{}] Ignoring stream event type {!r}", label, event.type)

    async def receiptWorker(self) -> None:
        while True:
            event = await self.queue.get()
            try:
                await self.dispatcher.handle(event, self.binding)
            finally:
                self.queue.task_done()
