"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers. Two kinds:

1. Service providers — build the auth services from settings once per
   process (lru_cache) or once per request (anything holding a DB
   session). Tests swap them through app.dependency_overrides.

2. The authorization gate — get_current_account(). Runs on every
   protected request:

       Authorization: Bearer <jwt>
         → TokenService.verify()          (signature + expiry)
         → AccountStore.get_public(sub)   (account still exists?)
         → AuthContext                     (immutable, handed to the route)

   The gate only reads. It never touches the session beyond one SELECT
   and never writes anything back onto the request object.
"""

import uuid
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.auth.federated import (
    DevelopmentIdentityBridge,
    GoogleIdentityBridge,
    IdentityBridge,
)
from notekeeper.auth.otp import OtpIssuer
from notekeeper.auth.password import PasswordHasher
from notekeeper.auth.store import AccountStore, PublicAccount
from notekeeper.auth.tokens import TokenClaims, TokenService
from notekeeper.config import settings
from notekeeper.db.engine import get_db
from notekeeper.errors import InvalidToken, Unauthenticated
from notekeeper.mail.sender import ConsoleEmailSender, EmailSender, SmtpEmailSender

# ─── Service providers ──────────────────────────────────


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=settings.bcrypt_rounds)


@lru_cache
def get_token_service() -> TokenService:
    return TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_in=timedelta(days=settings.token_expire_days),
    )


@lru_cache
def get_email_sender() -> EmailSender:
    if settings.email_backend == "smtp":
        return SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            sender=settings.email_from,
            display_name=settings.app_name,
            timeout=settings.smtp_timeout_seconds,
        )
    return ConsoleEmailSender()


@lru_cache
def get_identity_bridge() -> IdentityBridge:
    if settings.identity_provider == "development":
        return DevelopmentIdentityBridge()
    return GoogleIdentityBridge(client_id=settings.google_client_id)


def get_account_store(
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> AccountStore:
    return AccountStore(db, hasher)


def get_otp_issuer(
    db: AsyncSession = Depends(get_db),
    sender: EmailSender = Depends(get_email_sender),
) -> OtpIssuer:
    return OtpIssuer(
        db,
        sender,
        ttl=timedelta(minutes=settings.otp_ttl_minutes),
        app_name=settings.app_name,
    )


# ─── Authorization gate ─────────────────────────────────


@dataclass(frozen=True)
class AuthContext:
    """The authenticated account making the request.

    Learn: Built fresh per request and frozen. Downstream code (the note
    service) takes the account id from here to scope every query.
    """

    account: PublicAccount
    claims: TokenClaims

    @property
    def account_id(self) -> uuid.UUID:
        return self.account.id


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Pull the token out of an Authorization header value."""
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthenticated("Access denied. No token provided.")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise Unauthenticated("Access denied. No token provided.")
    return token


async def get_current_account(
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
    store: AccountStore = Depends(get_account_store),
) -> AuthContext:
    """Authenticate the request (401 if no valid token)."""
    token = extract_bearer_token(authorization)

    try:
        claims = tokens.verify(token)
    except InvalidToken:
        raise Unauthenticated("Token is not valid.")

    account = await store.get_public(claims.account_id)
    if account is None:
        raise Unauthenticated("Token is not valid.")

    return AuthContext(account=account, claims=claims)
