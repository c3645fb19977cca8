"""Login flow: password first, then the optional PIN second factor."""
from __future__ import annotations

from typing import Any, Final

import httpx
from loguru import logger

from posagent.engine.backend import BackendClient, describeError
from posagent.engine.config import AgentCredential
from posagent.engine.errors import AuthError
from posagent.engine.session import Session

# Used when the backend asks for a PIN and the credential has none configured.
# Security-sensitive: kept for compatibility with existing theater accounts.
DEFAULT_PIN: Final = "1234"


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


async def authenticate(backend: BackendClient, credential: AgentCredential) -> Session:
    """Log ``credential`` in and return a ``Session``, or raise ``AuthError``."""
    label = credential.label
    logger.info("[{}] Logging in as {}...", label, credential.username)

    try:
        found = _dict(await backend.login(credential.username, credential.password))
    except (httpx.HTTPError, ValueError) as e:
        raise AuthError(f"login request failed: {describeError(e)}") from e

    token = found.get("token")
    theaterId = _dict(found.get("user")).get("theaterId")

    if not token and found.get("isPinRequired") and found.get("pendingAuth"):
        pending = _dict(found.get("pendingAuth"))
        logger.info("[{}] PIN required for authentication", label)

        pin = credential.pin
        if not pin:
            logger.warning("[{}] No PIN configured, using the default PIN", label)
            pin = DEFAULT_PIN

        try:
            verified = _dict(
                await backend.validatePin(
                    {
                        "userId": pending.get("userId"),
                        "pin": pin,
                        "theaterId": pending.get("theaterId"),
                        "_tempPassword": credential.password,
                        "loginUsername": credential.username,
                    }
                )
            )
        except (httpx.HTTPError, ValueError) as e:
            raise AuthError(f"PIN validation failed: {describeError(e)}") from e

        if not (verified.get("success") and verified.get("token")):
            raise AuthError(
                f"PIN validation failed: {verified.get('error') or 'Unknown error'}"
            )

        logger.info("[{}] PIN validated successfully", label)
        token = verified["token"]
        theaterId = _dict(verified.get("user")).get("theaterId") or pending.get("theaterId")

    if not token:
        raise AuthError("login failed - no token")

    theaterId = theaterId or credential.theaterId
    session = Session(token=str(token), label=label, theaterId=str(theaterId) if theaterId else None)
    logger.info("[{}] Login successful, theaterId={}", label, session.theaterId or "<all>")

    return session
