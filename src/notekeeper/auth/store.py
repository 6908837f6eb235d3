"""Account persistence — the credential store.

Learn: All reads and writes of the users table go through AccountStore.
Two rules live here:

1. Emails are normalised (trimmed, lower-cased) on the way in, for both
   writes and lookups, so "A@X.com" and "a@x.com" are one account.
2. Anything that leaves the store for a client is a PublicAccount — an
   explicit projection without password_hash or the OTP fields. The
   authorization gate loads that projection straight from the database
   so the sensitive columns are never even selected.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.auth.password import PasswordHasher
from notekeeper.db.models import User
from notekeeper.errors import Conflict

logger = structlog.get_logger()


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass(frozen=True)
class PublicAccount:
    """The client-visible view of an account."""

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    profile_picture: str
    is_email_verified: bool
    created_at: Optional[datetime] = None


_PUBLIC_COLUMNS = (
    User.id,
    User.email,
    User.first_name,
    User.last_name,
    User.profile_picture,
    User.is_email_verified,
    User.created_at,
)


def to_public(user: User) -> PublicAccount:
    """Project a full account record onto its public view."""
    return PublicAccount(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        profile_picture=user.profile_picture or "",
        is_email_verified=user.is_email_verified,
        created_at=user.created_at,
    )


class AccountStore:
    """Create and look up accounts; owns password hashing."""

    def __init__(self, db: AsyncSession, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher

    # ─── Lookups ────────────────────────────────────────

    async def find_by_email(self, email: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalars().first()

    async def find_by_email_or_federated_id(
        self, email: str, federated_id: str
    ) -> User | None:
        result = await self.db.execute(
            select(User)
            .where(
                or_(
                    User.email == normalize_email(email),
                    User.federated_id == federated_id,
                )
            )
            # Prefer the account already linked to this identity.
            .order_by(User.federated_id.is_(None))
        )
        return result.scalars().first()

    async def get_public(self, account_id: uuid.UUID) -> PublicAccount | None:
        """Load the public projection of an account by id."""
        result = await self.db.execute(
            select(*_PUBLIC_COLUMNS).where(User.id == account_id)
        )
        row = result.first()
        if row is None:
            return None
        return PublicAccount(**row._asdict())

    # ─── Writes ─────────────────────────────────────────

    async def create_account(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> User:
        """Create an unverified account with a hashed password.

        Raises Conflict if the email is taken. The pre-check gives the
        common case a clean error; the unique constraint settles races.
        """
        email = normalize_email(email)
        if await self.find_by_email(email):
            raise Conflict()

        user = User(
            email=email,
            password_hash=self.hasher.hash(password),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            is_email_verified=False,
        )
        return await self._insert(user)

    async def create_federated_account(
        self,
        email: str,
        federated_id: str,
        first_name: str,
        last_name: str,
        profile_picture: str = "",
    ) -> User:
        """Create a verified, password-less account for a federated identity."""
        user = User(
            email=normalize_email(email),
            password_hash=None,
            first_name=first_name.strip(),
            last_name=(last_name or "").strip(),
            federated_id=federated_id,
            profile_picture=profile_picture or "",
            is_email_verified=True,
        )
        return await self._insert(user)

    async def _insert(self, user: User) -> User:
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            logger.info("auth.account_conflict", email=user.email)
            raise Conflict()
        return user

    def verify_password(self, user: User, candidate: str) -> bool:
        return self.hasher.verify(candidate, user.password_hash)
