"""Per-credential supervision: login, scope resolution, subscribers, re-login."""
from __future__ import annotations

import asyncio
from typing import Final

from loguru import logger

from posagent.engine.auth import authenticate
from posagent.engine.backend import BackendClient
from posagent.engine.config import AgentCredential
from posagent.engine.dispatcher import OrderDispatcher
from posagent.engine.errors import AuthError, ScopeError
from posagent.engine.printers import fetchPrinterConfig
from posagent.engine.resolver import TheaterBinding, resolveTheaters
from posagent.engine.subscriber import RETRY_DELAY, StreamSubscriber

RELOGIN_DELAY: Final = 10.0


class CredentialSupervisor:
    """Owns one credential's session and every subscriber spawned from it.

    A start-up failure ends only this supervisor. Once running, a subscriber
    that exhausts its retries triggers a full re-login: authentication,
    theater resolution and printer lookup run again while the healthy
    subscribers keep streaming, then only the subscribers that asked are
    replaced with ones on the fresh session. Theaters that newly came into
    scope are picked up at the same time.

    ``subscribers`` and ``tasks`` are keyed by theater id, so a binding never
    has two live subscribers.
    """

    def __init__(
        self,
        credential: AgentCredential,
        backend: BackendClient,
        dispatcher: OrderDispatcher,
        reloginDelay: float = RELOGIN_DELAY,
        retryDelay: float = RETRY_DELAY,
    ):
        self.credential = credential
        self.backend = backend
        self.dispatcher = dispatcher
        self.reloginDelay = reloginDelay
        self.retryDelay = retryDelay

        self.subscribers: dict[str, StreamSubscriber] = {}
        self.tasks: dict[str, asyncio.Task] = {}

        # subscribers that gave up and are waiting to be replaced
        self.reloginRequests: asyncio.Queue[StreamSubscriber] = asyncio.Queue()

        # number of completed re-logins
        self.relogins = 0

    @property
    def label(self) -> str:
        return self.credential.label

    async def setup(self) -> list[TheaterBinding]:
        """Authenticate and resolve bindings with their printer configs.

        Raises ``AuthError`` or ``ScopeError``.
        """
        session = await authenticate(self.backend, self.credential)
        bindings = await resolveTheaters(self.backend, session)
        for binding in bindings:
            binding.printer = await fetchPrinterConfig(self.backend, session, binding.label)

        return bindings

    def spawn(self, binding: TheaterBinding) -> None:
        sub = StreamSubscriber(
            self.backend,
            binding,
            self.dispatcher,
            requestRelogin=self.requestRelogin,
            retryDelay=self.retryDelay,
        )

        self.subscribers[binding.theaterId] = sub
        self.tasks[binding.theaterId] = asyncio.create_task(sub.run(), name=f"subscriber {sub.label}")

    def start(self, bindings: list[TheaterBinding]) -> None:
        for binding in bindings:
            self.spawn(binding)

        logger.info("[{}] Monitoring {} theater(s)", self.label, len(self.tasks))

    async def retire(self, theaterId: str) -> None:
        self.subscribers.pop(theaterId, None)
        if task := self.tasks.pop(theaterId, None):
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def stop(self) -> None:
        tasks = list(self.tasks.values())
        self.tasks, self.subscribers = {}, {}
        for task in tasks:
            task.cancel()

        await asyncio.gather(*tasks, return_exceptions=True)

    def requestRelogin(self, subscriber: StreamSubscriber) -> None:
        # a subscriber that was already replaced has nothing to ask for
        if self.subscribers.get(subscriber.binding.theaterId) is subscriber:
            self.reloginRequests.put_nowait(subscriber)

    async def relogin(self) -> list[TheaterBinding]:
        """Retry setup every ``reloginDelay`` seconds until it succeeds."""
        while True:
            logger.warning(
                "[{}] Will attempt full re-login in {}s...", self.label, self.reloginDelay
            )
            await asyncio.sleep(self.reloginDelay)
            logger.info("[{}] Restarting with fresh login...", self.label)

            try:
                return await self.setup()
            except (AuthError, ScopeError) as e:
                logger.error("[{}] Re-login failed: {}", self.label, e)
            except Exception:
                logger.exception("[{}] Re-login failed unexpectedly", self.label)

    async def replace(self, requested: list[StreamSubscriber], bindings: list[TheaterBinding]) -> None:
        """Swap the ``requested`` subscribers for ones built from fresh ``bindings``."""
        fresh = {binding.theaterId: binding for binding in bindings}

        for sub in requested:
            theaterId = sub.binding.theaterId
            if self.subscribers.get(theaterId) is not sub:
                continue

            await self.retire(theaterId)
            if theaterId in fresh:
                self.spawn(fresh[theaterId])
            else:
                logger.warning("[{}] Theater {} is no longer in scope", sub.label, theaterId)

        for theaterId, binding in fresh.items():
            if theaterId not in self.subscribers:
                logger.info("[{}] New theater in scope: {} ({})", self.label, binding.name, theaterId)
                self.spawn(binding)

    async def run(self) -> None:
        try:
            bindings = await self.setup()
        except (AuthError, ScopeError) as e:
            logger.error("[{}] Setup failed: {}", self.label, e)
            return
        except Exception:
            logger.exception("[{}] Setup failed unexpectedly", self.label)
            return

        try:
            self.start(bindings)
            while True:
                requested = [await self.reloginRequests.get()]
                bindings = await self.relogin()

                # fold in anyone else who gave up while we were logging in
                while not self.reloginRequests.empty():
                    requested.append(self.reloginRequests.get_nowait())

                await self.replace(requested, bindings)
                self.relogins += 1
        finally:
            await self.stop()
