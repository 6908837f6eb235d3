"""JWT session token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication. A token
is valid exactly as long as its signature checks out and `exp` is in the
future — there is no server-side session table and no revocation list.
Rotating the signing secret invalidates every outstanding token at once.

The token carries the account id (`sub`) and email.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt
import structlog

from notekeeper.errors import InvalidToken

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    """Decoded identity claims of a verified session token."""

    account_id: uuid.UUID
    email: str
    expires_at: datetime


class TokenService:
    """Issues and verifies signed session tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expires_in: timedelta = timedelta(days=7),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_in = expires_in
        self.clock = clock or _utcnow

    def issue(self, user, expires_in: Optional[timedelta] = None) -> str:
        """Create a session token for an account."""
        now = self.clock()
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "iat": now,
            "exp": now + (expires_in if expires_in is not None else self.expires_in),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Verify and decode a session token.

        Raises InvalidToken on failure. Expired and malformed tokens are
        the same error to the caller; only the log says which it was.

        Learn: PyJWT checks the signature and required claims; expiry is
        compared against self.clock so issue() and verify() share one
        notion of "now".
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={
                    "require": ["sub", "exp"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
            claims = TokenClaims(
                account_id=uuid.UUID(payload["sub"]),
                email=payload.get("email", ""),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except jwt.InvalidTokenError as e:
            logger.info("auth.token_rejected", reason=type(e).__name__)
            raise InvalidToken("Invalid token")
        except (ValueError, TypeError, OverflowError):
            logger.info("auth.token_rejected", reason="malformed_claims")
            raise InvalidToken("Invalid token")

        if claims.expires_at <= self.clock():
            logger.info("auth.token_rejected", reason="expired")
            raise InvalidToken("Invalid token")
        return claims
