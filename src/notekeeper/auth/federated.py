"""Federated login — verify an identity provider's assertion, map it to an account.

Learn: The bridge is split in two:

1. verify_assertion() — provider-specific. Turns a raw token from the
   client into a FederatedProfile, or raises. GoogleIdentityBridge checks
   the ID token signature against Google's published certificates;
   DevelopmentIdentityBridge skips all of that and returns a fixed test
   user. Which one runs is decided by settings.identity_provider at
   startup — no magic token value can switch it on at runtime, and the
   settings validator refuses the development bridge outside development.

2. link_or_create() — provider-agnostic. Finds the account by email OR
   federated id; links an existing password account the first time its
   owner signs in with the provider; otherwise creates a verified,
   password-less account. Calling it twice with the same profile always
   lands on the same row.
"""

import asyncio
from dataclasses import dataclass

import structlog
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.auth.store import AccountStore
from notekeeper.db.models import User
from notekeeper.errors import (
    Conflict,
    IncompleteProfile,
    InvalidAssertion,
    UpstreamFailure,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class FederatedProfile:
    subject: str
    email: str
    first_name: str
    last_name: str
    picture: str = ""


class IdentityBridge:
    """Interface: verify a provider assertion and extract the profile."""

    provider = "unknown"

    async def verify_assertion(self, raw_assertion: str) -> FederatedProfile:
        raise NotImplementedError


def profile_from_claims(claims: dict) -> FederatedProfile:
    """Build a profile from OpenID Connect claims. Raises IncompleteProfile."""
    subject = claims.get("sub")
    email = claims.get("email")
    first_name = claims.get("given_name")
    last_name = claims.get("family_name")
    if not subject or not email or not first_name or not last_name:
        raise IncompleteProfile()
    return FederatedProfile(
        subject=str(subject),
        email=email,
        first_name=first_name,
        last_name=last_name,
        picture=claims.get("picture") or "",
    )


class GoogleIdentityBridge(IdentityBridge):
    """Verify Google ID tokens issued for our OAuth client id."""

    provider = "google"

    def __init__(self, client_id: str):
        self.client_id = client_id
        self._request = google_requests.Request()

    def _verify_sync(self, raw_assertion: str) -> dict:
        return google_id_token.verify_oauth2_token(
            raw_assertion, self._request, self.client_id
        )

    async def verify_assertion(self, raw_assertion: str) -> FederatedProfile:
        # Certificate fetch + signature check are blocking; keep them off the loop.
        try:
            claims = await asyncio.to_thread(self._verify_sync, raw_assertion)
        except google_exceptions.TransportError as e:
            logger.warning("auth.federated_unreachable", provider=self.provider, error=str(e))
            raise UpstreamFailure("Identity provider unavailable")
        except (ValueError, google_exceptions.GoogleAuthError) as e:
            logger.info("auth.federated_rejected", provider=self.provider, error=str(e))
            raise InvalidAssertion()
        return profile_from_claims(claims)


class DevelopmentIdentityBridge(IdentityBridge):
    """Accept any assertion as a fixed local test user. Development only."""

    provider = "development"

    def __init__(self, profile: FederatedProfile | None = None):
        self.profile = profile or FederatedProfile(
            subject="dev_google_id_123",
            email="test@gmail.com",
            first_name="Test",
            last_name="User",
            picture="https://ui-avatars.com/api/?name=Test+User&background=4285f4&color=fff",
        )

    async def verify_assertion(self, raw_assertion: str) -> FederatedProfile:
        if not raw_assertion:
            raise InvalidAssertion()
        return self.profile


async def link_or_create(
    db: AsyncSession, store: AccountStore, profile: FederatedProfile
) -> tuple[User, bool]:
    """Resolve a verified profile to an account. Returns (user, created)."""
    user = await store.find_by_email_or_federated_id(profile.email, profile.subject)
    if user:
        if not user.federated_id:
            # The provider vouches for the email, so a pending signup is done.
            user.federated_id = profile.subject
            user.is_email_verified = True
            user.otp_code = None
            user.otp_expiry = None
            await db.commit()
            logger.info("auth.federated_linked", user_id=str(user.id))
        return user, False

    try:
        user = await store.create_federated_account(
            email=profile.email,
            federated_id=profile.subject,
            first_name=profile.first_name,
            last_name=profile.last_name,
            profile_picture=profile.picture,
        )
        await db.commit()
    except Conflict:
        # Lost a race with a concurrent login for the same identity.
        user = await store.find_by_email_or_federated_id(profile.email, profile.subject)
        if user is None:
            raise
        return user, False

    logger.info("auth.federated_created", user_id=str(user.id))
    return user, True
