from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..core.config import settings
from ..game.errors import Unauthorized

logger = logging.getLogger(__name__)

SESSION_COOKIE = "flickpick_session"
TOKEN_SALT = "flickpick-player"


@dataclass(frozen=True)
class PlayerIdentity:
    player_id: str


class IdentityProvider(ABC):
    """Turns an opaque bearer token into an authenticated player."""

    @abstractmethod
    def issue(self, player_id: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def resolve(self, token: str) -> Optional[PlayerIdentity]:
        raise NotImplementedError


class SignedTokenIdentityProvider(IdentityProvider):
    """Player tokens signed with the application secret.

    Tokens are issued by whatever signs players in (an OAuth callback, an
    admin tool) and expire after ``max_age`` seconds.
    """

    def __init__(self, secret: str, max_age: int) -> None:
        self.serializer = URLSafeTimedSerializer(secret, salt=TOKEN_SALT)
        self.max_age = max_age

    def issue(self, player_id: str) -> str:
        if not player_id:
            raise ValueError("player_id is required")
        return self.serializer.dumps({"sub": player_id})

    def resolve(self, token: str) -> Optional[PlayerIdentity]:
        try:
            payload = self.serializer.loads(token, max_age=self.max_age)
        except SignatureExpired:
            logger.info("Rejected expired player token")
            return None
        except BadSignature:
            logger.warning("Rejected player token with a bad signature")
            return None
        if not isinstance(payload, dict):
            return None
        player_id = payload.get("sub")
        if not isinstance(player_id, str) or not player_id:
            return None
        return PlayerIdentity(player_id=player_id)


_identity_provider: Optional[IdentityProvider] = None


def get_identity_provider() -> IdentityProvider:
    global _identity_provider
    if _identity_provider is None:
        _identity_provider = SignedTokenIdentityProvider(
            secret=settings.session_secret,
            max_age=settings.session_max_age_seconds,
        )
    return _identity_provider


def set_identity_provider(provider: Optional[IdentityProvider]) -> None:
    global _identity_provider
    _identity_provider = provider


def _extract_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token
    return request.cookies.get(SESSION_COOKIE) or None


async def require_player(request: Request) -> PlayerIdentity:
    """FastAPI dependency resolving the calling player or failing with 401."""

    token = _extract_token(request)
    if not token:
        raise Unauthorized("Authentication required")
    identity = get_identity_provider().resolve(token)
    if identity is None:
        raise Unauthorized("Authentication required")
    return identity
