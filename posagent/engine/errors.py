"""Exception hierarchy for the agent engine.

Only ``ConfigError`` is allowed to end the process; every other error is
caught by the task that owns the failing operation.
"""
from __future__ import annotations


class AgentError(Exception):
    """Base class for all agent failures."""


class ConfigError(AgentError):
    """No usable credential could be assembled at start-up."""


class AuthError(AgentError):
    """Login (or the PIN step) did not yield a token."""


class ScopeError(AgentError):
    """A session could not be resolved to any theater."""


class StreamError(AgentError):
    """The event stream could not be opened or was refused."""


class PrintError(AgentError):
    """The OS print spooler rejected or failed a job."""
