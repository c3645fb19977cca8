"""Receipt templates for 80 mm roll printers.

``renderHtml`` produces the self-contained printable page handed to the
system spooler; ``renderText`` produces the same content as fixed-width
text for spoolers that only take plain text. Both are pure functions of a
``Receipt`` and the generation time.
"""
from __future__ import annotations

import datetime
import html
from typing import Final

from posagent.engine.orders import Receipt
from posagent.engine.primitives import fmtGeneratedTime, fmtmoney, fmtOrderTime, fmtqty

THANKS: Final = "Thank you for your order!"
POWERED_BY: Final = "By YQPayNow"

# characters per line on an 80 mm roll at the default font
TEXT_WIDTH: Final = 42

STYLE: Final = """
    * { margin: 0; padding: 0; box-sizing: border-box; }
    @page { size: 80mm auto; margin: 0; }
    body { font-family: 'Courier New', monospace; max-width: 400px; margin: 0 auto;
           font-size: 11px; line-height: 1.1; background-color: #fff; }
    .bill-header { text-align: center; border-bottom: 1px dashed #000;
                   padding: 5px 0 4px 0; margin-bottom: 4px; }
    .bill-header-title { font-size: 16px; font-weight: bold; margin-bottom: 2px; }
    .bill-header-subtitle { font-size: 10px; color: #666; line-height: 1.1; }
    .bill-info-section { border-bottom: 1px dashed #000; padding: 0 10px 3px 10px; margin-bottom: 3px; }
    .bill-info-row { display: flex; justify-content: space-between; margin-bottom: 1px; }
    .bill-info-label { font-weight: bold; }
    .items-table-header, .item-row, .summary-row, .summary-total {
        display: grid; grid-template-columns: 2fr 0.7fr 1fr 1fr; }
    .items-table-header { font-weight: bold; border-bottom: 1px solid #000;
                          padding: 0 10px 2px 10px; margin-bottom: 2px; font-size: 10px; }
    .item-row { margin-bottom: 1px; font-size: 10px; padding: 0 10px; }
    .item-name { word-break: break-word; }
    .center { text-align: center; }
    .right { text-align: right; }
    .item-total { text-align: right; font-weight: bold; }
    .summary-section { border-top: 1px dashed #000; margin-top: 3px; padding: 3px 10px 0 10px; }
    .summary-row { margin-bottom: 1px; }
    .summary-value { grid-column: 4; text-align: right; }
    .summary-total { font-weight: bold; font-size: 13px; border-top: 1px solid #000;
                     padding-top: 2px; margin-top: 2px; }
    .bill-footer { text-align: center; margin-top: 4px; border-top: 1px dashed #000;
                   font-size: 9px; color: #666; padding: 4px 10px 5px 10px; }
    .bill-footer-thanks { margin: 2px 0; font-weight: bold; }
"""


def contactLines(receipt: Receipt) -> list[str]:
    """Theater contact block; a line only appears when the order carries it."""
    t = receipt.theater
    found = []
    if t.address:
        found.append(t.address)
    if t.phone:
        found.append(f"Phone: {t.phone}")
    if t.email:
        found.append(f"Email: {t.email}")
    if t.fssaiNumber:
        found.append(f"FSSAI: {t.fssaiNumber}")
    if t.gstNumber:
        found.append(f"GST: {t.gstNumber}")

    return found


def summaryRows(receipt: Receipt) -> list[tuple[str, str]]:
    """(label, amount) rows shown above the grand total."""
    rows = []
    if receipt.subtotal > 0:
        rows.append(("Subtotal:", fmtmoney(receipt.subtotal)))

    if receipt.tax > 0:
        rows.append(("CGST:", fmtmoney(receipt.cgst)))
        rows.append(("SGST:", fmtmoney(receipt.sgst)))

    if receipt.discount > 0:
        rows.append(("Discount:", fmtmoney(-receipt.discount)))

    return rows


def infoRows(receipt: Receipt) -> list[tuple[str, str]]:
    return [
        ("Invoice ID:", receipt.orderNumber),
        ("Date:", fmtOrderTime(receipt.orderedAt)),
        ("Bill To:", receipt.customerName),
        ("Payment:", receipt.paymentMethod),
    ]


def renderHtml(receipt: Receipt, generatedAt: datetime.datetime) -> str:
    e = html.escape

    contact = "<br>\n      ".join(e(line) for line in contactLines(receipt))

    info = "".join(
        f"""
    <div class="bill-info-row">
      <span class="bill-info-label">{e(label)}</span>
      <span>{e(value)}</span>
    </div>"""
        for label, value in infoRows(receipt)
    )

    items = "".join(
        f"""
    <div class="item-row">
      <div class="item-name">{e(line.name)}</div>
      <div class="center">{e(fmtqty(line.qty))}</div>
      <div class="right">{e(fmtmoney(line.rate))}</div>
      <div class="item-total">{e(fmtmoney(line.total))}</div>
    </div>"""
        for line in receipt.lines
    )

    summary = "".join(
        f"""
    <div class="summary-row">
      <span>{e(label)}</span><span></span><span></span>
      <span class="summary-value">{e(amount)}</span>
    </div>"""
        for label, amount in summaryRows(receipt)
    )

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>{e(receipt.orderNumber)}</title>
  <style>{STYLE}</style>
</head>
<body>
  <div class="bill-header">
    <div class="bill-header-title">{e(receipt.theater.name)}</div>
    <div class="bill-header-subtitle">
      {contact}
    </div>
  </div>

  <div class="bill-info-section">{info}
  </div>

  <div class="items-table-header">
    <div>Item Name</div>
    <div class="center">Qty</div>
    <div class="right">Rate</div>
    <div class="right">Total</div>
  </div>
{items}

  <div class="summary-section">{summary}
    <div class="summary-total">
      <span>Grand Total:</span><span></span><span></span>
      <span class="summary-value">{e(fmtmoney(receipt.grandTotal))}</span>
    </div>
  </div>

  <div class="bill-footer">
    <p class="bill-footer-thanks">{e(THANKS)}</p>
    <p>{e(POWERED_BY)}</p>
    <p class="bill-footer-date">Generated on {e(fmtGeneratedTime(generatedAt))}</p>
  </div>
</body>
</html>
"""


def _pair(left: str, right: str, width: int = TEXT_WIDTH) -> str:
    gap = max(1, width - len(left) - len(right))
    return f"{left}{' ' * gap}{right}"


def renderText(receipt: Receipt, generatedAt: datetime.datetime) -> str:
    rule = "-" * TEXT_WIDTH
    out = [receipt.theater.name.center(TEXT_WIDTH).rstrip()]
    out += [line.center(TEXT_WIDTH).rstrip() for line in contactLines(receipt)]
    out.append(rule)
    out += [_pair(label, value) for label, value in infoRows(receipt)]
    out.append(rule)
    out.append(f"{'Item Name':<18}{'Qty':>5}{'Rate':>9}{'Total':>10}")

    for line in receipt.lines:
        # long names get their own row so the numeric columns stay aligned
        name = line.name if len(line.name) <= 18 else ""
        if not name:
            out.append(line.name)

        out.append(
            f"{name:<18}{fmtqty(line.qty):>5}{fmtmoney(line.rate):>9}{fmtmoney(line.total):>10}"
        )

    out.append(rule)
    out += [_pair(label, amount) for label, amount in summaryRows(receipt)]
    out.append(_pair("Grand Total:", fmtmoney(receipt.grandTotal)))
    out.append(rule)
    out.append(THANKS.center(TEXT_WIDTH).rstrip())
    out.append(POWERED_BY.center(TEXT_WIDTH).rstrip())
    out.append(f"Generated on {fmtGeneratedTime(generatedAt)}".center(TEXT_WIDTH).rstrip())

    return "\n".join(out) + "\n"
