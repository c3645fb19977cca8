"""Server-sent event framing and payload parsing for the POS stream.

The stream is read as raw bytes. ``SSEFramer`` turns chunks into complete
``data:`` payloads and ``parseEvent`` turns each payload into a tagged
``StreamEvent``. Anything that is not a ``data:`` line (comments, ``event:``,
``id:``, heartbeats) is dropped by the framer.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Final

DATA_PREFIX: Final = b"data:"


class SSEFramer:
    """Accumulates stream bytes and yields the text of each ``data:`` line.

    A newline terminates a line; the trailing partial line stays buffered
    until the next chunk completes it. Splitting happens on bytes so a
    multi-byte character cut across two chunks is reassembled intact.
    """

    __slots__ = ("buffer",)

    def __init__(self):
        self.buffer = bytearray()

    def feed(self, chunk: bytes) -> list[str]:
        self.buffer += chunk
        *lines, rest = self.buffer.split(b"\n")
        self.buffer = bytearray(rest)

        found = []
        for line in lines:
            if line.startswith(DATA_PREFIX):
                found.append(line[len(DATA_PREFIX) :].decode("utf-8", errors="replace").strip())

        return found

    def reset(self) -> None:
        self.buffer.clear()


@dataclass(slots=True, frozen=True)
class Connected:
    """Liveness marker the server sends right after the stream opens."""

    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class PosOrder:
    orderId: str
    event: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class UnknownEvent:
    type: str | None
    payload: Any = None


StreamEvent = Connected | PosOrder | UnknownEvent


def parseEvent(text: str) -> StreamEvent:
    """Parse one ``data:`` payload. Raises ``ValueError`` on invalid JSON."""
    payload = json.loads(text)
    if not isinstance(payload, dict):
        return UnknownEvent(type=None, payload=payload)

    match payload.get("type"):
        case "connected":
            return Connected(payload)
        case "pos_order":
            return PosOrder(
                orderId=str(payload.get("orderId") or ""),
                event=str(payload.get("event") or ""),
                payload=payload,
            )
        case other:
            return UnknownEvent(type=other, payload=payload)
