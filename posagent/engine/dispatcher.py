"""Decide which stream events print, fetch their orders, and hand them to the spooler."""
from __future__ import annotations

from typing import TYPE_CHECKING, Final

import httpx
from loguru import logger

from posagent.engine.backend import BackendClient, describeError
from posagent.engine.events import PosOrder
from posagent.engine.orders import buildReceipt, isCashSettled, unwrapOrder
from posagent.engine.spooler import Spooler

if TYPE_CHECKING:
    from posagent.engine.resolver import TheaterBinding

# "paid": online / QR orders after successful payment
# "created": counter orders, printed only when already settled in cash
PRINTABLE_EVENTS: Final = frozenset({"paid", "created"})


class OrderDispatcher:
    """Handles one ``PosOrder`` event at a time for a given binding.

    There is deliberately no deduplication: the same order delivered twice
    prints twice.
    """

    def __init__(self, backend: BackendClient, spooler: Spooler):
        self.backend = backend
        self.spooler = spooler

    async def handle(self, event: PosOrder, binding: TheaterBinding) -> None:
        """Process one event. Never raises (apart from cancellation)."""
        label = binding.label
        try:
            await self._handle(event, binding)
        except Exception:
            logger.exception("[{}] Error handling order {}", label, event.orderId)

    async def _handle(self, event: PosOrder, binding: TheaterBinding) -> None:
        label = binding.label
        if event.event not in PRINTABLE_EVENTS:
            return

        if not event.orderId:
            logger.warning("[{}] Ignoring {} event without an orderId", label, event.event)
            return

        logger.info("[{}] Fetching order: {}", label, event.orderId)
        try:
            body = await self.backend.order(binding.session, binding.theaterId, event.orderId)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("[{}] Skipping order {}: fetch failed ({})", label, event.orderId, describeError(e))
            return

        order = unwrapOrder(body)

        if event.event == "created" and not isCashSettled(order):
            logger.info("[{}] Skipping {} - payment not completed yet", label, event.orderId)
            return

        receipt = buildReceipt(order)
        logger.info("[{}] Order eligible for printing: {}", label, receipt.orderNumber)

        await self.spooler.printReceipt(receipt, binding.printer, label)
