"""Session service: explicit login sessions carrying the current owner id."""

import logging
import secrets
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, Field

from cortex.core.config import settings
from cortex.core.errors import NotAuthenticatedError
from cortex.core.logging import span


logger = logging.getLogger(__name__)


class SessionContext(BaseModel):
    """Who is logged in. Created on login, cleared on logout."""

    owner_id: str
    username: str = ""
    started_at: datetime
    expires_at: datetime
    cleared: bool = Field(default=False, description="Set once the session is logged out")

    def is_active(self, *, now: datetime | None = None) -> bool:
        return not self.cleared and (now or datetime.now(UTC)) < self.expires_at

    def require_owner_id(self, *, now: datetime | None = None) -> str:
        """Owner id of an active session.

        Raises:
            NotAuthenticatedError: If the session was cleared or has expired
        """
        if not self.is_active(now=now):
            msg = "Session is not active"
            raise NotAuthenticatedError(msg)
        return self.owner_id

    def clear(self) -> None:
        self.cleared = True


class SessionStore:
    """In-memory map of opaque session tokens to contexts."""

    def __init__(self, *, ttl: timedelta | None = None) -> None:
        self._sessions: dict[str, SessionContext] = {}
        self._ttl = ttl or timedelta(hours=settings.session_ttl_hours)

    def login(self, *, owner_id: str, username: str = "", now: datetime | None = None) -> tuple[str, SessionContext]:
        """Start a session and return its token and context."""
        with span("session_service.login"):
            started = now or datetime.now(UTC)
            self._prune(now=started)
            context = SessionContext(
                owner_id=owner_id,
                username=username,
                started_at=started,
                expires_at=started + self._ttl,
            )
            token = secrets.token_urlsafe(32)
            self._sessions[token] = context
            logger.info("Session started", extra={"owner_id": owner_id, "expires_at": context.expires_at.isoformat()})
            return token, context

    def get(self, token: str | None, *, now: datetime | None = None) -> SessionContext:
        """Active context for a token.

        Raises:
            NotAuthenticatedError: If the token is unknown, cleared or expired
        """
        context = self._sessions.get(token) if token else None
        if context is None:
            msg = "Unknown session token"
            raise NotAuthenticatedError(msg)
        if not context.is_active(now=now):
            self._sessions.pop(token, None)  # type: ignore[arg-type]
            msg = "Session expired"
            raise NotAuthenticatedError(msg)
        return context

    def _prune(self, *, now: datetime) -> None:
        """Drop sessions that were cleared or have expired."""
        expired = [token for token, context in self._sessions.items() if not context.is_active(now=now)]
        for token in expired:
            del self._sessions[token]
        if expired:
            logger.debug("Pruned expired sessions", extra={"count": len(expired)})

    def logout(self, token: str | None) -> None:
        """Clear a session. Unknown tokens are ignored."""
        context = self._sessions.pop(token, None) if token else None
        if context is not None:
            context.clear()
            logger.info("Session cleared", extra={"owner_id": context.owner_id})

    @property
    def active_count(self) -> int:
        return sum(1 for context in self._sessions.values() if context.is_active())


# Global session store used by the HTTP API
session_store = SessionStore()
