"""Per-theater printer preferences fetched from the backend."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Final

import httpx
from loguru import logger

from posagent.engine.backend import BackendClient, describeError
from posagent.engine.session import Session


class PrinterDriver(enum.StrEnum):
    # HTML receipt handed to the OS spooler
    SYSTEM = "system"

    # plain-text receipt, for spoolers without an HTML filter
    TEXT = "text"


DEFAULT_PRINTER_NAME: Final = "Posiflex PP8800 Printer"


@dataclass(slots=True, frozen=True)
class PrinterConfig:
    driver: str = PrinterDriver.SYSTEM

    # empty means "let the OS pick its default printer"
    printerName: str = DEFAULT_PRINTER_NAME

    @property
    def resolvedDriver(self) -> PrinterDriver:
        try:
            return PrinterDriver(self.driver.lower())
        except ValueError:
            return PrinterDriver.SYSTEM


DEFAULT_PRINTER: Final = PrinterConfig()


async def fetchPrinterConfig(
    backend: BackendClient, session: Session, label: str | None = None
) -> PrinterConfig:
    """Return the backend's printer settings, or ``DEFAULT_PRINTER`` on any failure."""
    label = label or session.label

    try:
        found = await backend.printerSettings(session)
        config = found["data"]["config"]
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("[{}] Using default printer config ({})", label, describeError(e))
        return DEFAULT_PRINTER
    except (KeyError, TypeError):
        logger.warning("[{}] Using default printer config (no config returned)", label)
        return DEFAULT_PRINTER

    if not isinstance(config, dict):
        logger.warning("[{}] Using default printer config (no config returned)", label)
        return DEFAULT_PRINTER

    printer = PrinterConfig(
        driver=str(config.get("driver") or PrinterDriver.SYSTEM),
        printerName=str(config.get("printerName") or "").strip(),
    )

    if printer.resolvedDriver.value != printer.driver.lower():
        logger.warning(
            "[{}] Printer driver {!r} not supported here, printing through the system spooler",
            label,
            printer.driver,
        )

    logger.info(
        "[{}] Printer config: driver={} printer={}",
        label,
        printer.resolvedDriver.value,
        printer.printerName or "<OS default>",
    )

    return printer
