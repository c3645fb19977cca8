"""posagent engine layer — the testable core with no process-level concerns.

Modules
-------
config
    ``AgentCredential`` / ``RuntimeConfig`` and ``loadConfig()`` (JSON file + env overlay).
errors
    ``AgentError`` hierarchy: ``ConfigError``, ``AuthError``, ``ScopeError``,
    ``StreamError``, ``PrintError``.
session
    ``Session``: bearer token, bound theater, credential label.
backend
    ``BackendClient``: async httpx wrapper for every backend endpoint, including the SSE stream.
auth
    ``authenticate()``: password login plus optional PIN step.
resolver
    ``TheaterBinding`` and ``resolveTheaters()`` (single theater or super-admin fan-out).
printers
    ``PrinterConfig`` and ``fetchPrinterConfig()`` with the safe default.
events
    ``SSEFramer`` (byte line framing) and ``parseEvent()`` -> ``Connected`` / ``PosOrder`` / ``UnknownEvent``.
subscriber
    ``StreamSubscriber``: reconnecting stream reader with a per-binding receipt worker.
supervisor
    ``CredentialSupervisor``: one per credential; start-up and full re-login.
dispatcher
    ``OrderDispatcher``: eligibility filter and order fetch.
orders
    ``unwrapOrder()``, ``isCashSettled()``, ``buildReceipt()`` — every JSON fallback chain.
primitives
    Tolerant lookups, Decimal coercion, rupee and en-IN date formatting.
receipt
    ``renderHtml()`` / ``renderText()`` receipt templates.
spooler
    ``Spooler``: artifact files, ``lp`` submission with default-printer fallback, delayed cleanup.
"""

from posagent.engine.config import AgentCredential, RuntimeConfig, loadConfig
from posagent.engine.errors import (
    AgentError,
    AuthError,
    ConfigError,
    PrintError,
    ScopeError,
    StreamError,
)
from posagent.engine.printers import PrinterConfig
from posagent.engine.session import Session

__all__ = [
    "AgentCredential",
    "RuntimeConfig",
    "loadConfig",
    "AgentError",
    "AuthError",
    "ConfigError",
    "PrintError",
    "ScopeError",
    "StreamError",
    "PrinterConfig",
    "Session",
]
