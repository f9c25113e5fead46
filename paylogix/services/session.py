"""
Session provider.

The remote variant scopes every record to the signed-in user. The session
is only consulted for that; there is no sign-in screen in this app and the
identity comes from configuration (or from tests).

No session means no data access: repositories raise NoSessionError
before touching storage.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field

from paylogix.config import SessionSettings, get_settings


class UserSession(BaseModel):
    """The signed-in user."""

    user_id: str = Field(..., min_length=1)
    email: Optional[str] = None


class SessionProvider(ABC):
    """Source of the current user's identity."""

    @abstractmethod
    def get_session(self) -> Optional[UserSession]:
        """Current session, or None when nobody is signed in."""
        pass


class StaticSessionProvider(SessionProvider):
    """A fixed session, or none."""

    def __init__(self, session: Optional[UserSession] = None):
        self._session = session

    def get_session(self) -> Optional[UserSession]:
        return self._session


def settings_session_provider(
    settings: Optional[SessionSettings] = None,
) -> StaticSessionProvider:
    """Build a provider from SESSION_* settings."""
    settings = settings or get_settings().session
    if not settings.user_id:
        return StaticSessionProvider()
    return StaticSessionProvider(
        UserSession(user_id=settings.user_id, email=settings.email)
    )
