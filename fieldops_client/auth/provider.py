from abc import ABC, abstractmethod
from datetime import datetime, UTC
from typing import Optional
import logging

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

class AuthProvider(ABC):
    """Source of the bearer token for outbound requests."""

    @abstractmethod
    async def get_session_token(self) -> Optional[str]:
        """Current access token, or None when there is no session."""

class AnonymousProvider(AuthProvider):
    """Provider for callers without a session."""

    async def get_session_token(self) -> Optional[str]:
        return None

class StaticTokenProvider(AuthProvider):
    """Always returns the same token, e.g. a service credential."""

    def __init__(self, token: Optional[str]):
        self.token = token

    async def get_session_token(self) -> Optional[str]:
        return self.token

class SessionTokenProvider(AuthProvider):
    """Holds the signed-in user's access token.

    The token is read on every call so a refreshed session is picked up by the
    next request. An expired token is treated as no session at all.
    """

    def __init__(self, access_token: Optional[str] = None):
        self._access_token = access_token

    def set_session(self, access_token: Optional[str]) -> None:
        self._access_token = access_token

    def clear_session(self) -> None:
        self._access_token = None

    async def get_session_token(self) -> Optional[str]:
        token = self._access_token
        if not token:
            return None

        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError as e:
            logger.warning(f"Discarding malformed session token: {e}")
            return None

        exp = claims.get("exp")
        if exp is not None and datetime.fromtimestamp(exp, UTC) <= datetime.now(UTC):
            logger.info("Session token expired, continuing without authorization")
            return None
        return token
