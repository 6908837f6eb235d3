"""Auth API — signup, OTP verification, login, Google sign-in, current user.

Learn: Routes for the account lifecycle:
- POST /auth/signup → create an unverified account, email a 6-digit code
- POST /auth/verify-otp → code → verified account + JWT
- POST /auth/login → email/password → JWT (verified accounts only)
- POST /auth/google → Google ID token → JWT (account linked or created)
- POST /auth/resend-otp → new code for a still-unverified account
- GET /auth/me → current user (behind the authorization gate)

Errors are raised as notekeeper.errors exceptions; main.py turns them
into responses.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.auth.dependencies import (
    AuthContext,
    get_account_store,
    get_current_account,
    get_identity_bridge,
    get_otp_issuer,
    get_token_service,
)
from notekeeper.auth.federated import IdentityBridge
from notekeeper.auth.otp import OtpIssuer
from notekeeper.auth.store import AccountStore, to_public
from notekeeper.auth.tokens import TokenService
from notekeeper.db.engine import get_db
from notekeeper.schemas.auth import (
    AuthResponse,
    FederatedLoginRequest,
    LoginRequest,
    MeResponse,
    ResendOtpRequest,
    SignupRequest,
    SignupResponse,
    UserRead,
    VerifyOtpRequest,
)
from notekeeper.schemas.common import MessageResponse
from notekeeper.services.auth_service import AuthService

router = APIRouter(prefix="/auth")


def _svc(
    db: AsyncSession = Depends(get_db),
    store: AccountStore = Depends(get_account_store),
    otp: OtpIssuer = Depends(get_otp_issuer),
    tokens: TokenService = Depends(get_token_service),
    bridge: IdentityBridge = Depends(get_identity_bridge),
) -> AuthService:
    return AuthService(db, store, otp, tokens, bridge)


def _user(user) -> UserRead:
    return UserRead.model_validate(to_public(user))


# ─── Signup + verification ──────────────────────────────


@router.post("/signup", response_model=SignupResponse, status_code=201)
async def signup(body: SignupRequest, svc: AuthService = Depends(_svc)):
    """Register a new user. The account stays unverified until the OTP is confirmed."""
    user = await svc.signup(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    return SignupResponse(
        message="User registered successfully. Please check your email for OTP verification.",
        user=_user(user),
    )


@router.post("/verify-otp", response_model=AuthResponse)
async def verify_otp(body: VerifyOtpRequest, svc: AuthService = Depends(_svc)):
    user, token = await svc.verify_otp(body.email, body.otp)
    return AuthResponse(
        message="Email verified successfully", token=token, user=_user(user)
    )


@router.post("/resend-otp", response_model=MessageResponse)
async def resend_otp(body: ResendOtpRequest, svc: AuthService = Depends(_svc)):
    await svc.resend_otp(body.email)
    return MessageResponse(message="OTP sent successfully")


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, svc: AuthService = Depends(_svc)):
    """Login with email and password → JWT."""
    user, token = await svc.login(body.email, body.password)
    return AuthResponse(message="Login successful", token=token, user=_user(user))


@router.post("/google", response_model=AuthResponse)
async def google_login(body: FederatedLoginRequest, svc: AuthService = Depends(_svc)):
    """Sign in (or sign up) with a Google ID token."""
    user, token, created = await svc.federated_login(body.token)
    message = "Account created successfully with Google" if created else "Login successful"
    return AuthResponse(message=message, token=token, user=_user(user))


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=MeResponse)
async def get_me(ctx: AuthContext = Depends(get_current_account)):
    """Get the current authenticated user's profile."""
    return MeResponse(user=UserRead.model_validate(ctx.account))
