"""Order normalization: every backend shape fallback lives in this module.

The backend has served orders in several shapes over time. Rather than a
strict schema, each receipt field is read through an explicit fallback
chain (first present wins):

    order body        data -> order -> <root>
    items             items -> products
    grand total       pricing.total -> totalAmount -> total        (default 0)
    tax               pricing.tax -> tax -> pricing.gst -> gst     (default 0)
    discount          pricing.discount -> discount                 (default 0)
    item name         productName -> name                          (default "Item")
    item qty          quantity                                     (default 1)
    item rate         unitPrice -> price                           (default 0)
    item total        totalPrice -> total                          (default qty * rate)
    item size label   originalQuantity -> size -> productSize -> sizeLabel
                      -> variant.option -> variants[0].option
    theater name      theaterName -> theater.name                  (default "THEATER")
    customer name     customerName -> customerInfo.name            (default "Customer")
    payment method    payment.method                               (default "CASH")
    order time        createdAt                                    (default: now)

Amount chains (totals, tax, discount, rate, line total) skip 0 as well as
missing or empty values, so `pricing.total: 0` falls through to `totalAmount`.
Text chains only skip missing or empty values.

Derived values: subtotal = grand total - tax; CGST = SGST = tax / 2.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Final

from posagent.engine.primitives import (
    D0,
    D2,
    dig,
    firstNonZero,
    firstPresent,
    parseTimestamp,
    toDecimal,
)

CASH_METHODS: Final = frozenset({"cash", "cod"})
SETTLED_STATUSES: Final = frozenset({"completed", "paid"})

ADDRESS_PARTS: Final = ("street", "city", "state", "zipCode", "country")


def unwrapOrder(body: Any) -> dict[str, Any]:
    """Return the order object whether it sits under ``data``, ``order`` or at the root."""
    if not isinstance(body, dict):
        return {}

    for key in ("data", "order"):
        if isinstance(found := body.get(key), dict) and found:
            return found

    return body


def isCashSettled(order: dict[str, Any]) -> bool:
    """True if a freshly created order is already paid in cash (or COD)."""
    method = str(dig(order, "payment", "method") or "").strip().lower()
    status = str(dig(order, "payment", "status") or "").strip().lower()
    return method in CASH_METHODS and status in SETTLED_STATUSES


def sizeLabel(item: dict[str, Any]) -> str | None:
    found = firstPresent(
        item.get("originalQuantity"),
        item.get("size"),
        item.get("productSize"),
        item.get("sizeLabel"),
        dig(item, "variant", "option"),
        dig(item, "variants", 0, "option"),
    )

    return str(found) if found is not None else None


@dataclass(slots=True, frozen=True)
class ReceiptLine:
    name: str
    qty: Decimal
    rate: Decimal
    total: Decimal


@dataclass(slots=True, frozen=True)
class TheaterInfo:
    name: str = "THEATER"
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    fssaiNumber: str | None = None
    gstNumber: str | None = None


@dataclass(slots=True, frozen=True)
class Receipt:
    """Everything the renderers need, already normalized and computed."""

    orderNumber: str
    orderedAt: datetime.datetime
    customerName: str
    paymentMethod: str
    theater: TheaterInfo
    lines: tuple[ReceiptLine, ...] = field(default_factory=tuple)
    grandTotal: Decimal = D0
    tax: Decimal = D0
    discount: Decimal = D0

    @property
    def subtotal(self) -> Decimal:
        return self.grandTotal - self.tax

    @property
    def cgst(self) -> Decimal:
        return self.tax / D2

    @property
    def sgst(self) -> Decimal:
        return self.tax / D2


def receiptLine(item: dict[str, Any]) -> ReceiptLine:
    qty = toDecimal(item.get("quantity")) or Decimal(1)
    rate = toDecimal(firstNonZero(item.get("unitPrice"), item.get("price")))
    total = toDecimal(firstNonZero(item.get("totalPrice"), item.get("total")), default=qty * rate)

    name = str(firstPresent(item.get("productName"), item.get("name"), default="Item"))
    if size := sizeLabel(item):
        name = f"{name} ({size})"

    return ReceiptLine(name=name, qty=qty, rate=rate, total=total)


def _address(theater: dict[str, Any]) -> str | None:
    address = theater.get("address")
    if isinstance(address, dict):
        parts = [str(address[k]) for k in ADDRESS_PARTS if address.get(k)]
        return ", ".join(parts) or None

    if isinstance(address, str) and address.strip():
        return address.strip()

    return None


def theaterInfo(order: dict[str, Any]) -> TheaterInfo:
    theater = order.get("theater")
    if not isinstance(theater, dict):
        theater = {}

    def text(key: str) -> str | None:
        value = theater.get(key)
        return str(value).strip() if value not in (None, "") else None

    return TheaterInfo(
        name=str(firstPresent(order.get("theaterName"), theater.get("name"), default="THEATER")),
        address=_address(theater),
        phone=text("phone"),
        email=text("email"),
        fssaiNumber=text("fssaiNumber"),
        gstNumber=text("gstNumber"),
    )


def buildReceipt(order: dict[str, Any], now: datetime.datetime | None = None) -> Receipt:
    """Normalize one order into a ``Receipt``. Never raises on odd shapes."""
    items = firstPresent(order.get("items"), order.get("products"), default=[])
    if not isinstance(items, list):
        items = []

    orderedAt = parseTimestamp(order.get("createdAt")) or now or datetime.datetime.now().astimezone()

    return Receipt(
        orderNumber=str(firstPresent(order.get("orderNumber"), default="N/A")),
        orderedAt=orderedAt,
        customerName=str(
            firstPresent(order.get("customerName"), dig(order, "customerInfo", "name"), default="Customer")
        ),
        paymentMethod=str(firstPresent(dig(order, "payment", "method"), default="CASH")).upper(),
        theater=theaterInfo(order),
        lines=tuple(receiptLine(item) for item in items if isinstance(item, dict)),
        grandTotal=toDecimal(
            firstNonZero(dig(order, "pricing", "total"), order.get("totalAmount"), order.get("total"))
        ),
        tax=toDecimal(
            firstNonZero(
                dig(order, "pricing", "tax"),
                order.get("tax"),
                dig(order, "pricing", "gst"),
                order.get("gst"),
            )
        ),
        discount=toDecimal(firstNonZero(dig(order, "pricing", "discount"), order.get("discount"))),
    )
