"""Hand rendered receipts to the OS print spooler.

Each print writes a transient artifact, submits it with ``lp`` (or any
command taking the same ``-d <printer> <file>`` arguments), retries once
against the OS default printer, and always schedules the artifact for
deletion a few seconds later because the spooler may still be reading it
after ``lp`` returns.
"""
from __future__ import annotations

import asyncio
import contextlib
import datetime
import os
import pathlib
import shlex
import tempfile
import time
from dataclasses import dataclass, field
from typing import Final

from loguru import logger

from posagent.engine.errors import PrintError
from posagent.engine.orders import Receipt
from posagent.engine.printers import PrinterConfig, PrinterDriver
from posagent.engine.receipt import renderHtml, renderText

CLEANUP_DELAY: Final = 3.0
SPOOL_TIMEOUT: Final = 60.0


@dataclass(slots=True, frozen=True)
class ReceiptArtifact:
    path: pathlib.Path
    created: datetime.datetime


@dataclass(slots=True)
class Spooler:
    directory: pathlib.Path = field(default_factory=pathlib.Path.cwd)
    command: str = "lp"
    cleanupDelay: float = CLEANUP_DELAY
    timeout: float = SPOOL_TIMEOUT

    # pending delayed deletions; held so the tasks are not garbage collected
    cleanups: set[asyncio.Task] = field(default_factory=set)

    def writeArtifact(self, content: str, suffix: str) -> ReceiptArtifact:
        """Write ``content`` to a fresh file named after a nanosecond timestamp."""
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(
            prefix=f"receipt-{time.time_ns()}-", suffix=suffix, dir=self.directory
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)

        return ReceiptArtifact(path=pathlib.Path(name), created=datetime.datetime.now())

    def spoolCommand(self, path: pathlib.Path, printerName: str | None) -> list[str]:
        cmd = shlex.split(self.command)
        if printerName and printerName.strip():
            cmd += ["-d", printerName.strip()]

        cmd.append(str(path))
        return cmd

    async def submit(self, path: pathlib.Path, printerName: str | None) -> None:
        """Run the spooler once. Raises ``PrintError`` on any failure."""
        cmd = self.spoolCommand(path, printerName)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise PrintError(f"cannot run {cmd[0]}: {e}") from e

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), self.timeout)
        except TimeoutError as e:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()

            raise PrintError(f"{cmd[0]} timed out after {self.timeout:.0f}s") from e

        if proc.returncode != 0:
            detail = stderr.decode(errors="replace").strip() if stderr else ""
            raise PrintError(f"{cmd[0]} exited with {proc.returncode}: {detail}")

    async def printReceipt(
        self,
        receipt: Receipt,
        printer: PrinterConfig,
        label: str,
        generatedAt: datetime.datetime | None = None,
    ) -> bool:
        """Render, spool and clean up one receipt. Returns True if any attempt printed."""
        generatedAt = generatedAt or datetime.datetime.now().astimezone()

        if printer.resolvedDriver is PrinterDriver.TEXT:
            artifact = self.writeArtifact(renderText(receipt, generatedAt), ".txt")
        else:
            artifact = self.writeArtifact(renderHtml(receipt, generatedAt), ".html")

        logger.info("[{}] Printing order: {}", label, receipt.orderNumber)

        try:
            try:
                await self.submit(artifact.path, printer.printerName)
                logger.info("[{}] PRINT SUCCESS - Order {}", label, receipt.orderNumber)
                return True
            except PrintError as e:
                logger.error("[{}] Print failed: {}", label, e)

            try:
                await self.submit(artifact.path, None)
                logger.info(
                    "[{}] PRINT SUCCESS (default printer) - Order {}", label, receipt.orderNumber
                )
                return True
            except PrintError as e:
                logger.error("[{}] Default printer also failed: {}", label, e)

            return False
        finally:
            self.scheduleCleanup(artifact)

    def scheduleCleanup(self, artifact: ReceiptArtifact) -> asyncio.Task:
        task = asyncio.create_task(self.removeLater(artifact), name=f"cleanup {artifact.path.name}")
        self.cleanups.add(task)
        task.add_done_callback(self.cleanups.discard)
        return task

    async def removeLater(self, artifact: ReceiptArtifact) -> None:
        await asyncio.sleep(self.cleanupDelay)

        # the file may already be gone or still locked by the spooler; neither matters
        with contextlib.suppress(OSError):
            artifact.path.unlink(missing_ok=True)

    async def drain(self) -> None:
        """Wait for every scheduled deletion (used at shutdown and in tests)."""
        if self.cleanups:
            await asyncio.gather(*list(self.cleanups), return_exceptions=True)
