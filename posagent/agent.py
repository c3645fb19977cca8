"""The POS agent application: logging, last-chance handlers, and supervisors."""

from __future__ import annotations

import asyncio
import contextlib
import pathlib
import signal
import sys
from dataclasses import dataclass, field
from typing import Final

import httpx
from loguru import logger

from posagent.engine.backend import BackendClient
from posagent.engine.config import RuntimeConfig
from posagent.engine.dispatcher import OrderDispatcher
from posagent.engine.errors import AuthError, ScopeError
from posagent.engine.spooler import Spooler
from posagent.engine.supervisor import CredentialSupervisor

LOG_FORMAT: Final = "{time:YYYY-MM-DDTHH:mm:ss.SSSZZ} | {level: <8} | {message}"

KEEPALIVE_INTERVAL: Final = 30.0


def setupLogging(logFile: pathlib.Path | None, consoleLevel: str = "INFO") -> None:
    """Console on stderr plus one append-only log file.

    The file sink goes through loguru's queue (``enqueue=True``) so lines
    from concurrent tasks and threads never interleave.
    """
    logger.remove()
    logger.add(sys.stderr, level=consoleLevel, colorize=True, format=LOG_FORMAT)

    if logFile:
        logFile.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            logFile,
            level="DEBUG",
            format=LOG_FORMAT,
            colorize=False,
            enqueue=True,
            encoding="utf-8",
        )


def installErrorHandlers(loop: asyncio.AbstractEventLoop) -> None:
    """Log anything that escapes a task or the main thread without exiting."""

    def onLoopError(loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exc = context.get("exception")
        logger.opt(exception=exc).error(
            "UNHANDLED ASYNC ERROR: {}", context.get("message") or repr(exc)
        )

    def onUncaught(exctype, value, tb) -> None:
        if issubclass(exctype, KeyboardInterrupt):
            sys.__excepthook__(exctype, value, tb)
            return

        logger.opt(exception=(exctype, value, tb)).error("UNCAUGHT EXCEPTION: {}", value)

    loop.set_exception_handler(onLoopError)
    sys.excepthook = onUncaught


@dataclass(slots=True)
class PosAgent:
    config: RuntimeConfig

    # delays are overridable so tests don't wait on wall-clock time
    keepaliveInterval: float = KEEPALIVE_INTERVAL

    # pre-built transport client (None builds a default one for the backend URL)
    http: httpx.AsyncClient | None = None

    backend: BackendClient = field(init=False)
    spooler: Spooler = field(init=False)
    dispatcher: OrderDispatcher = field(init=False)
    supervisors: list[CredentialSupervisor] = field(init=False, default_factory=list)

    def __post_init__(self) -> None:
        self.backend = BackendClient(self.config.backendUrl, self.http)
        self.spooler = Spooler(directory=self.config.receiptDir, command=self.config.printCommand)
        self.dispatcher = OrderDispatcher(self.backend, self.spooler)
        self.supervisors = [
            CredentialSupervisor(credential, self.backend, self.dispatcher)
            for credential in self.config.credentials
        ]

    async def keepalive(self) -> None:
        """No-op tick keeping the process alive even if every supervisor exits."""
        while True:
            await asyncio.sleep(self.keepaliveInterval)
            active = sum(len(s.tasks) for s in self.supervisors)
            logger.debug("Keepalive: {} active subscriber(s)", active)

    def installProcessHooks(self) -> None:
        """Last-chance error logging plus SIGINT/SIGTERM cancelling the running task."""
        loop = asyncio.get_running_loop()
        installErrorHandlers(loop)

        current = asyncio.current_task()
        if current is None:
            return

        for sig in (signal.SIGINT, signal.SIGTERM):
            # signal handlers on the loop are POSIX only
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, current.cancel)

    async def run(self) -> None:
        self.installProcessHooks()

        logger.info("=== POS Agent Service Starting ===")
        logger.info(
            "Backend {} with {} configured agent(s)",
            self.config.backendUrl,
            len(self.config.credentials),
        )

        tasks = [asyncio.create_task(self.keepalive(), name="keepalive")]
        tasks += [
            asyncio.create_task(s.run(), name=f"supervisor {s.label}") for s in self.supervisors
        ]

        logger.info("=== POS Agent Service Ready ===")
        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()

            await asyncio.gather(*tasks, return_exceptions=True)
            await self.spooler.drain()
            await self.backend.aclose()
            logger.info("=== POS Agent Service Stopped ===")

    async def check(self) -> bool:
        """Log in and resolve every credential once without opening streams."""
        ok = True
        try:
            for supervisor in self.supervisors:
                label = supervisor.label
                try:
                    bindings = await supervisor.setup()
                except (AuthError, ScopeError) as e:
                    logger.error("[{}] FAILED: {}", label, e)
                    ok = False
                    continue

                for binding in bindings:
                    logger.info(
                        "[{}] OK: theater {} ({}) printer={} driver={}",
                        binding.label,
                        binding.name,
                        binding.theaterId,
                        binding.printer.printerName or "<OS default>",
                        binding.printer.resolvedDriver.value,
                    )
        finally:
            await self.backend.aclose()

        return ok
