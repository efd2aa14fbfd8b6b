"""Signed, expiring bearer credentials."""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import jwt

from filebrowser.domain.correlation_id import CorrelationLoggerAdapter

TOKEN_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebrowser.domain.tokens"), {}
)

TOKEN_ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["exp", "username", "role"]


class Role(str, Enum):
    """Roles a credential can carry."""

    ADMIN = "admin"
    USER = "user"


@dataclass(frozen=True)
class Identity:
    """Authenticated username and role, valid for a single request."""

    username: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def to_dict(self) -> dict[str, str]:
        return {"username": self.username, "role": self.role.value}


class TokenAuthority:
    """Issues and verifies HS256 tokens with a server-held secret."""

    def __init__(
        self,
        secret: str,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, identity: Identity, ttl_seconds: Optional[int] = None) -> str:
        """Sign the identity with an expiry ``ttl_seconds`` from now."""
        now = int(self._clock())
        ttl = self._ttl_seconds if ttl_seconds is None else ttl_seconds
        claims = {
            "username": identity.username,
            "role": identity.role.value,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(claims, self._secret, algorithm=TOKEN_ALGORITHM)

    def verify(self, token: Optional[str]) -> Optional[Identity]:
        """Return the identity carried by a valid token, else None.

        Bad signatures, malformed tokens, expired tokens and unknown roles all
        collapse into None so callers cannot tell them apart.
        """
        if not token:
            return None
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                options={"require": REQUIRED_CLAIMS},
            )
            username = claims["username"]
            role = Role(claims["role"])
        except (jwt.PyJWTError, ValueError, TypeError) as error:
            TOKEN_LOGGER.debug(
                "Token rejected",
                extra={"event": "token_rejected", "error_type": type(error).__name__},
            )
            return None
        if not isinstance(username, str) or not username:
            return None
        return Identity(username, role)
