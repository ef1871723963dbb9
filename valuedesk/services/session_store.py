"""
Client-side session persistence.

The session holds the signed-in identity and its token pair. ``SessionStore``
keeps it as JSON in the user's config directory; ``MemorySessionStore`` is the
in-process variant used by tests and short-lived scripts.
"""

import json
import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Optional

from valuedesk.core.config import settings
from valuedesk.core.exceptions import StorageError
from valuedesk.core.logging_config import logger


GUEST = "guest"


@dataclass(frozen=True)
class SessionState:
    """Stored identity plus token pair"""
    username: str
    role: str
    client_id: str
    token: Optional[str] = None
    refresh_token: Optional[str] = None

    @classmethod
    def guest(cls) -> "SessionState":
        return cls(username=GUEST, role=GUEST, client_id=GUEST)

    def identity(self) -> dict:
        """Identity fields embedded in request bodies when there is no token"""
        return {"username": self.username, "role": self.role, "clientId": self.client_id}

    def with_token(self, token: str) -> "SessionState":
        return replace(self, token=token)


class MemorySessionStore:
    """Session kept in memory only"""

    def __init__(self, session: Optional[SessionState] = None):
        self._session = session

    def load(self) -> Optional[SessionState]:
        return self._session

    def save(self, session: SessionState) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class SessionStore(MemorySessionStore):
    """
    Session persisted as JSON (default ``~/.valuedesk/session.json``).

    The file is read once on construction and rewritten on every change.
    """

    def __init__(self, path: Optional[Path] = None):
        super().__init__()
        self.path = Path(path) if path else settings.session_path
        self._session = self._read()

    def _read(self) -> Optional[SessionState]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return SessionState(**data)
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"[SessionStore] Ignoring unreadable session file {self.path}: {e}")
            return None

    def save(self, session: SessionState) -> None:
        super().save(session)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(asdict(session), f, indent=2)
            # Owner-only on POSIX; chmod is a no-op elsewhere
            os.chmod(self.path, 0o600)
        except OSError as e:
            raise StorageError(f"Could not save session: {e}", path=str(self.path))

    def clear(self) -> None:
        super().clear()
        try:
            if self.path.exists():
                self.path.unlink()
        except OSError as e:
            raise StorageError(f"Could not clear session: {e}", path=str(self.path))
