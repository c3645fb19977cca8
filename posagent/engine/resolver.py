"""Resolve a session into the theaters the agent must serve."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
from loguru import logger

from posagent.engine.backend import BackendClient, describeError
from posagent.engine.errors import ScopeError
from posagent.engine.printers import DEFAULT_PRINTER, PrinterConfig
from posagent.engine.session import Session


@dataclass(slots=True)
class TheaterBinding:
    """One (session, theater) pair; owns exactly one subscriber at a time."""

    theaterId: str
    name: str
    session: Session

    # super-admin fan-out bindings are labelled "<credential>-<theater>"
    fanout: bool = False

    # filled in once per binding after resolution
    printer: PrinterConfig = field(default=DEFAULT_PRINTER)

    @property
    def label(self) -> str:
        if self.fanout:
            return f"{self.session.label}-{self.name}"

        return self.session.label


def theaterList(body: Any) -> list:
    """Extract the theater list from ``{data: [...]}``, ``{theaters: [...]}`` or a bare list."""
    if isinstance(body, list):
        return body

    if isinstance(body, dict):
        for key in ("data", "theaters"):
            if isinstance(found := body.get(key), list):
                return found

    return []


async def resolveTheaters(backend: BackendClient, session: Session) -> list[TheaterBinding]:
    """Return one binding per in-scope theater, in server order.

    Raises ``ScopeError`` if a super-admin session yields no theaters.
    """
    if session.theaterId:
        return [TheaterBinding(theaterId=session.theaterId, name=session.label, session=session)]

    label = session.label
    try:
        body = await backend.theaters(session)
    except (httpx.HTTPError, ValueError) as e:
        raise ScopeError(f"failed to fetch theaters: {describeError(e)}") from e

    bindings = []
    for idx, theater in enumerate(theaterList(body), start=1):
        if not isinstance(theater, dict):
            continue

        tid = theater.get("_id") or theater.get("id")
        if not tid:
            logger.warning("[{}] Skipping theater #{} without an id", label, idx)
            continue

        name = theater.get("name") or f"Theater-{idx}"
        bindings.append(
            TheaterBinding(theaterId=str(tid), name=str(name), session=session, fanout=True)
        )

    if not bindings:
        raise ScopeError("no theaters found")

    logger.info("[{}] Super admin detected - connecting to ALL {} theaters", label, len(bindings))
    for binding in bindings:
        logger.info("[{}] Connecting to: {} ({})", label, binding.name, binding.theaterId)

    return bindings
