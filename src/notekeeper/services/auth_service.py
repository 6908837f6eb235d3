"""Auth service — signup, verification, login, federated login.

Learn: Service layer separates business logic from HTTP routing.
The routes in api/auth.py only translate requests and responses; the
flows themselves live here, composed from the auth building blocks:

    signup       → AccountStore.create_account → OtpIssuer.issue (mail failure tolerated)
    verify_otp   → OtpIssuer.verify → TokenService.issue
    login        → AccountStore lookup + password check → TokenService.issue
    federated    → IdentityBridge.verify_assertion → link_or_create → TokenService.issue
    resend_otp   → OtpIssuer.resend (mail failure surfaced)
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.auth.federated import IdentityBridge, link_or_create
from notekeeper.auth.otp import OtpIssuer
from notekeeper.auth.store import AccountStore
from notekeeper.auth.tokens import TokenService
from notekeeper.db.models import User
from notekeeper.errors import Unauthenticated, UpstreamFailure

logger = structlog.get_logger()


class AuthService:
    """Business logic for account lifecycle and session issuance."""

    def __init__(
        self,
        db: AsyncSession,
        store: AccountStore,
        otp: OtpIssuer,
        tokens: TokenService,
        bridge: IdentityBridge | None = None,
    ):
        self.db = db
        self.store = store
        self.otp = otp
        self.tokens = tokens
        self.bridge = bridge

    async def signup(
        self, email: str, password: str, first_name: str, last_name: str
    ) -> User:
        """Create an unverified account and email it a verification code.

        Learn: A mail outage must not block account creation. The code is
        committed before sending, so the user can ask for a resend once
        mail is back.
        """
        user = await self.store.create_account(email, password, first_name, last_name)
        try:
            await self.otp.issue(user)
        except UpstreamFailure:
            logger.warning("auth.signup_email_failed", user_id=str(user.id))
        logger.info("auth.signup", user_id=str(user.id))
        return user

    async def verify_otp(self, email: str, code: str) -> tuple[User, str]:
        user = await self.otp.verify(email, code)
        return user, self.tokens.issue(user)

    async def login(self, email: str, password: str) -> tuple[User, str]:
        """Password login. Every failure is the same Unauthenticated."""
        user = await self.store.find_by_email(email)
        if user is None:
            self.store.hasher.dummy_verify(password)
            logger.info("auth.login_failed")
            raise Unauthenticated()

        if not self.store.verify_password(user, password) or not user.is_email_verified:
            logger.info("auth.login_failed", user_id=str(user.id))
            raise Unauthenticated()

        logger.info("auth.login", user_id=str(user.id))
        return user, self.tokens.issue(user)

    async def federated_login(self, assertion: str) -> tuple[User, str, bool]:
        """Sign in with an identity provider token. Returns (user, token, created)."""
        profile = await self.bridge.verify_assertion(assertion)
        user, created = await link_or_create(self.db, self.store, profile)
        logger.info(
            "auth.federated_login",
            provider=self.bridge.provider,
            user_id=str(user.id),
            created=created,
        )
        return user, self.tokens.issue(user), created

    async def resend_otp(self, email: str) -> None:
        await self.otp.resend(email)
