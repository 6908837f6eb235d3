"""One-time email verification codes.

Learn: The OTP "state machine" is just two nullable columns on the user
plus the verified flag:

    NoPendingOTP --issue()--> PendingOTP --verify() ok--> NoPendingOTP
                                  |  ^
                                  +--+ issue() again (resend) overwrites

verify() is a single conditional UPDATE. The WHERE clause carries every
condition (email, code, not expired, not yet verified), so two concurrent
attempts with the right code can't both succeed — the database lets one
UPDATE match and the other sees zero rows.

Every failure is the same InvalidOrExpiredOTP. Callers can't probe
whether an email exists, whether it's already verified, or whether
the code was right but stale.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.auth.store import normalize_email
from notekeeper.db.models import User
from notekeeper.errors import InvalidOrExpiredOTP, NotFound, UpstreamFailure
from notekeeper.mail.sender import EmailSender
from notekeeper.mail.templates import otp_email

logger = structlog.get_logger()

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp() -> str:
    """Uniformly random 6-digit code in [100000, 999999]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OtpIssuer:
    """Issue, deliver and check email verification codes."""

    def __init__(
        self,
        db: AsyncSession,
        sender: EmailSender,
        ttl: timedelta = timedelta(minutes=10),
        app_name: str = "Notes App",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.sender = sender
        self.ttl = ttl
        self.app_name = app_name
        self.clock = clock or _utcnow

    async def issue(self, user: User) -> str:
        """Store a fresh code on the account, commit, then email it.

        Raises UpstreamFailure if the email couldn't be sent. The code is
        already committed by then, so a later resend or a delivery that
        actually went through still works.
        """
        code = generate_otp()
        user.otp_code = code
        user.otp_expiry = self.clock() + self.ttl
        await self.db.commit()

        subject, body = otp_email(
            self.app_name,
            user.first_name,
            code,
            int(self.ttl.total_seconds() // 60),
        )
        if not await self.sender.send(user.email, subject, body):
            logger.warning("auth.otp_email_failed", user_id=str(user.id))
            raise UpstreamFailure("Failed to send OTP email")

        logger.info("auth.otp_issued", user_id=str(user.id))
        return code

    async def verify(self, email: str, code: str) -> User:
        """Consume a pending code. Returns the now-verified account."""
        email = normalize_email(email)
        result = await self.db.execute(
            update(User)
            .where(
                User.email == email,
                User.otp_code == code,
                User.otp_expiry > self.clock(),
                User.is_email_verified.is_(False),
            )
            .values(
                is_email_verified=True,
                otp_code=None,
                otp_expiry=None,
                updated_at=self.clock(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            logger.info("auth.otp_rejected")
            raise InvalidOrExpiredOTP()
        await self.db.commit()

        user = (
            await self.db.execute(
                select(User)
                .where(User.email == email)
                .execution_options(populate_existing=True)
            )
        ).scalars().one()
        logger.info("auth.email_verified", user_id=str(user.id))
        return user

    async def resend(self, email: str) -> None:
        """Issue a new code for an account that is still unverified.

        Raises NotFound for unknown or already-verified emails, and lets
        UpstreamFailure from issue() propagate.
        """
        result = await self.db.execute(
            select(User).where(
                User.email == normalize_email(email),
                User.is_email_verified.is_(False),
            )
        )
        user = result.scalars().first()
        if not user:
            raise NotFound("User not found or already verified")
        await self.issue(user)
