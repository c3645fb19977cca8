"""Runtime configuration: JSON file overlaid by environment variables.

The file is optional and forgiving (missing or malformed files count as
empty), but the final credential list must not be empty.
"""
from __future__ import annotations

import json
import os
import pathlib
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final

from dotenv import dotenv_values
from loguru import logger

from posagent.engine.errors import ConfigError

DEFAULT_BACKEND_URL: Final = "http://localhost:8080"
DEFAULT_PRINT_COMMAND: Final = "lp"

# label used for the single credential assembled from THEATER_* variables
ENV_LABEL: Final = "Theater-Env"

DOTENV_FILE: Final = ".env.posagent"


@dataclass(slots=True, frozen=True)
class AgentCredential:
    """One login identity the agent manages."""

    username: str
    password: str
    label: str
    pin: str | None = None

    # theater hint used only when the backend does not bind the session itself
    theaterId: str | None = None

    def __repr__(self) -> str:
        # keep secrets out of log lines
        return f"AgentCredential(label={self.label!r}, username={self.username!r})"


@dataclass(slots=True, frozen=True)
class RuntimeConfig:
    backendUrl: str = DEFAULT_BACKEND_URL
    credentials: tuple[AgentCredential, ...] = field(default_factory=tuple)

    # spooler executable (CUPS `lp` compatible command line)
    printCommand: str = DEFAULT_PRINT_COMMAND

    # where transient receipt artifacts are written
    receiptDir: pathlib.Path = field(default_factory=pathlib.Path.cwd)


def readConfigFile(path: pathlib.Path) -> dict[str, Any]:
    """Return the parsed config file, or an empty dict if missing or malformed."""
    if not path.exists():
        logger.info("No config file at {}, relying on environment", path)
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error("Failed to parse {}: {}", path, e)
        return {}

    if not isinstance(data, dict):
        logger.error("Ignoring {}: top level must be a JSON object", path)
        return {}

    return data


def _text(value: Any) -> str | None:
    if value is None:
        return None

    value = str(value).strip()
    return value or None


def credentialsFromFile(agents: Any) -> list[AgentCredential]:
    if not isinstance(agents, list):
        return []

    found = []
    for idx, entry in enumerate(agents, start=1):
        if not isinstance(entry, dict):
            logger.warning("[Agent-{}] Skipping - entry is not an object", idx)
            continue

        label = _text(entry.get("label")) or f"Agent-{idx}"
        username = _text(entry.get("username"))
        password = entry.get("password")
        if not username or not password:
            logger.warning("[{}] Skipping - missing username or password", label)
            continue

        found.append(
            AgentCredential(
                username=username,
                password=str(password),
                label=label,
                pin=_text(entry.get("pin")),
                theaterId=_text(entry.get("theaterId")),
            )
        )

    return found


def loadConfig(
    path: str | os.PathLike[str] = "config.json",
    environ: Mapping[str, str] | None = None,
) -> RuntimeConfig:
    """Build the process-wide ``RuntimeConfig``.

    ``environ`` defaults to the dotenv file merged under the real process
    environment, so variables exported in the shell always win.
    """
    path = pathlib.Path(path)
    if environ is None:
        environ = {**dotenv_values(DOTENV_FILE), **os.environ}  # type: ignore

    data = readConfigFile(path)
    credentials = credentialsFromFile(data.get("agents"))

    username = _text(environ.get("THEATER_USERNAME"))
    password = environ.get("THEATER_PASSWORD")
    if username and password:
        # env credentials replace the file's list entirely (single theater mode)
        logger.info("Using environment variables for credentials")
        credentials = [
            AgentCredential(
                username=username,
                password=password,
                label=ENV_LABEL,
                pin=_text(environ.get("THEATER_PIN")),
                theaterId=_text(environ.get("THEATER_ID")),
            )
        ]

    if not credentials:
        raise ConfigError("No agents configured")

    backendUrl = (
        _text(environ.get("BACKEND_URL"))
        or _text(data.get("backendUrl"))
        or DEFAULT_BACKEND_URL
    )

    printCommand = (
        _text(environ.get("POS_PRINT_COMMAND"))
        or _text(data.get("printCommand"))
        or DEFAULT_PRINT_COMMAND
    )

    receiptDir = pathlib.Path(_text(data.get("receiptDir")) or pathlib.Path.cwd())

    return RuntimeConfig(
        backendUrl=backendUrl.rstrip("/"),
        credentials=tuple(credentials),
        printCommand=printCommand,
        receiptDir=receiptDir,
    )
