"""Authenticated handle to the backend."""
from __future__ import annotations

import dataclasses


@dataclasses.dataclass(slots=True, frozen=True)
class Session:
    """Bearer token plus the theater it is bound to (if any).

    Sessions live in memory only. A session without ``theaterId`` is a
    super-admin session and fans out over every theater the backend lists.
    """

    token: str
    label: str
    theaterId: str | None = None

    @property
    def isSuperAdmin(self) -> bool:
        return not self.theaterId

    def bearer(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    def __repr__(self) -> str:
        return f"Session(label={self.label!r}, theaterId={self.theaterId!r})"
