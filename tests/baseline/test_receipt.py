"""Tests for posagent.engine.receipt — HTML and plain-text templates."""
import dataclasses
import datetime
from decimal import Decimal

import pytest

from posagent.engine.orders import Receipt, ReceiptLine, TheaterInfo, buildReceipt
from posagent.engine.receipt import (
    POWERED_BY,
    TEXT_WIDTH,
    THANKS,
    contactLines,
    renderHtml,
    renderText,
    summaryRows,
)

GENERATED = datetime.datetime(2026, 10, 19, 14, 5, 9)


@pytest.fixture
def receipt() -> Receipt:
    return Receipt(
        orderNumber="N1",
        orderedAt=datetime.datetime(2026, 10, 19, 14, 5),
        customerName="Customer",
        paymentMethod="CASH",
        theater=TheaterInfo(name="Galaxy Cinemas"),
        lines=(ReceiptLine("Popcorn (Large)", Decimal(2), Decimal(100), Decimal(200)),),
        grandTotal=Decimal(236),
        tax=Decimal(36),
    )


class TestSummary:
    def test_rows_for_taxed_order(self, receipt):
        assert summaryRows(receipt) == [
            ("Subtotal:", "₹200.00"),
            ("CGST:", "₹18.00"),
            ("SGST:", "₹18.00"),
        ]

    def test_discount_is_negative(self, receipt):
        discounted = dataclasses.replace(receipt, discount=Decimal(10))
        assert ("Discount:", "-₹10.00") in summaryRows(discounted)

    def test_zero_rows_are_hidden(self, receipt):
        empty = dataclasses.replace(receipt, grandTotal=Decimal(0), tax=Decimal(0))
        assert summaryRows(empty) == []

    def test_contact_lines_only_when_present(self, receipt):
        assert contactLines(receipt) == []

        theater = TheaterInfo(name="G", address="Main St", phone="99", gstNumber="G1")
        full = dataclasses.replace(receipt, theater=theater)
        assert contactLines(full) == ["Main St", "Phone: 99", "GST: G1"]


class TestHtml:
    def test_contains_receipt_fields(self, receipt):
        page = renderHtml(receipt, GENERATED)

        assert page.startswith("<!DOCTYPE html>")
        assert "size: 80mm auto" in page
        for text in (
            "Galaxy Cinemas",
            "Invoice ID:",
            "N1",
            "19/10/2026, 02:05 pm",
            "Popcorn (Large)",
            "₹200.00",
            "₹18.00",
            "Grand Total:",
            "₹236.00",
            THANKS,
            POWERED_BY,
            "Generated on 19/10/2026, 2:05:09 pm",
        ):
            assert text in page

    def test_text_is_escaped(self, receipt):
        hostile = dataclasses.replace(
            receipt, customerName="<script>x</script>", theater=TheaterInfo(name="Tom & Jerry")
        )
        page = renderHtml(hostile, GENERATED)
        assert "<script>" not in page
        assert "&lt;script&gt;" in page
        assert "Tom &amp; Jerry" in page

    def test_no_address_placeholder(self, receipt):
        assert "Address" not in renderHtml(receipt, GENERATED)

    def test_built_from_order(self, cashOrder):
        page = renderHtml(buildReceipt(cashOrder), GENERATED)
        assert "Galaxy Cinemas" in page
        assert "₹236.00" in page


class TestText:
    def test_layout(self, receipt):
        text = renderText(receipt, GENERATED)
        lines = text.splitlines()

        assert lines[0].strip() == "Galaxy Cinemas"
        assert all(len(line) <= TEXT_WIDTH for line in lines)
        assert "Grand Total:" in text
        assert lines[-1].strip() == "Generated on 19/10/2026, 2:05:09 pm"
        assert text.endswith("\n")

    def test_amounts_are_right_aligned(self, receipt):
        lines = renderText(receipt, GENERATED).splitlines()
        total = next(line for line in lines if line.startswith("Grand Total:"))
        assert total.endswith("₹236.00")
        assert len(total) == TEXT_WIDTH

    def test_long_names_get_their_own_row(self, receipt):
        long = dataclasses.replace(
            receipt,
            lines=(ReceiptLine("Caramel Popcorn Jumbo Tub", Decimal(1), Decimal(5), Decimal(5)),),
        )
        lines = renderText(long, GENERATED).splitlines()
        idx = lines.index("Caramel Popcorn Jumbo Tub")
        assert lines[idx + 1].strip().startswith("1")
