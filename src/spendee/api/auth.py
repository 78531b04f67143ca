"""Account and session endpoints.

``account_router`` holds registration and the emailed-link flows mounted
directly under ``/api``; ``router`` holds the session routes under ``/api/auth``.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import RedirectResponse

from spendee.api.deps import AuthRateLimit, BearerToken, CurrentUser, SessionDep
from spendee.config import settings
from spendee.constants import LOGIN_VERIFIED_REDIRECT
from spendee.errors import ConflictError, NotFoundError, SpendeeError, ValidationError
from spendee.models import User
from spendee.models.user import UserRead
from spendee.schemas import (
    EmailRequest,
    LoginRequest,
    LoginUrlResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    SessionResponse,
    SuccessResponse,
    TokenResponse,
)
from spendee.services.auth import (
    AuthError,
    authorize,
    create_session_token,
    get_user_by_email,
    is_stale,
    read_session,
    renew_session,
    verify_token,
)
from spendee.services.notifications import send_password_reset_email, send_verification_email
from spendee.services.oauth import (
    callback_url,
    consume_state,
    create_state,
    fetch_profile,
    get_provider,
    sign_in_with_profile,
)
from spendee.services.passwords import hash_password
from spendee.services.tokens import TokenPurpose, consume_token

logger = logging.getLogger(__name__)

account_router = APIRouter()
router = APIRouter()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _token_response(user: User, token: str) -> TokenResponse:
    info = read_session(token)
    return TokenResponse(
        access_token=token,
        user=UserRead.model_validate(user),
        created_at=info.created_at,
        expires_at=info.expires_at,
    )


@account_router.post("/register", response_model=RegisterResponse)
async def register(
    request: RegisterRequest,
    session: SessionDep,
    _rate_limit: AuthRateLimit,
):
    """Create a password account and email a verification link."""
    if not request.name or not request.email or not request.password:
        raise ValidationError("Missing fields")

    if await get_user_by_email(session, request.email):
        raise ConflictError("User already exists")

    user = User(
        name=request.name,
        email=request.email,
        password=hash_password(request.password),
    )
    session.add(user)
    await session.flush()

    # A failed send is not fatal here; the user can ask for another link
    await send_verification_email(session, user)
    await session.commit()

    logger.info(f"Registered {user.email}")
    return RegisterResponse(user=UserRead.model_validate(user))


@account_router.post("/forgot-password", response_model=SuccessResponse)
async def forgot_password(
    request: EmailRequest,
    session: SessionDep,
    _rate_limit: AuthRateLimit,
):
    """Email a reset link. Answers the same whether or not the account exists."""
    if not request.email:
        raise ValidationError("Email is required")

    await send_password_reset_email(session, request.email)
    await session.commit()
    return SuccessResponse()


@account_router.post("/reset-password", response_model=SuccessResponse)
async def reset_password(
    request: ResetPasswordRequest,
    session: SessionDep,
    _rate_limit: AuthRateLimit,
):
    """Set a new password using an emailed reset token."""
    if not request.token or not request.password:
        raise ValidationError("Missing data")

    try:
        user_id = await consume_token(
            session,
            request.token,
            TokenPurpose.RESET_PASSWORD,
            password_hash=hash_password(request.password),
        )
    except SpendeeError as e:
        # Unknown and expired tokens look the same to the caller
        raise ValidationError("Invalid or expired token") from e

    await session.commit()
    logger.info(f"Password reset for user {user_id}")
    return SuccessResponse()


@account_router.get("/verify-email")
async def verify_email(session: SessionDep, token: str | None = None):
    """Mark the address verified and send the browser to the login page."""
    if not token:
        raise ValidationError("Invalid token")

    try:
        await consume_token(session, token, TokenPurpose.VERIFY_EMAIL)
    except SpendeeError as e:
        raise ValidationError("Invalid or expired token") from e

    await session.commit()
    return RedirectResponse(url=LOGIN_VERIFIED_REDIRECT, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@account_router.post("/resend-verification", response_model=SuccessResponse)
async def resend_verification(
    request: EmailRequest,
    session: SessionDep,
    _rate_limit: AuthRateLimit,
):
    """Send a fresh verification link, invalidating the previous one."""
    if not request.email:
        raise ValidationError("Missing email")

    user = await get_user_by_email(session, request.email)
    if not user:
        raise NotFoundError("No user found with this email")

    if user.email_verified:
        raise ValidationError("Email already verified")

    sent = await send_verification_email(session, user)
    if not sent:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send email",
        )

    await session.commit()
    return SuccessResponse()


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    session: SessionDep,
    _rate_limit: AuthRateLimit,
):
    """Exchange email and password for a session token."""
    user = await authorize(session, request.email, request.password)
    if not user:
        raise _unauthorized("Invalid credentials")

    return _token_response(user, create_session_token(user))


@router.get("/{provider}/login", response_model=LoginUrlResponse)
async def oauth_login(
    provider: str,
    session: SessionDep,
    _rate_limit: AuthRateLimit,
):
    """Start a GitHub or Google sign-in and return the provider's consent URL."""
    oauth = get_provider(provider)
    state = await create_state(session, oauth.name)
    await session.commit()
    return LoginUrlResponse(url=oauth.authorization_url(state, callback_url(oauth.name)))


@router.get("/{provider}/callback", response_model=TokenResponse)
async def oauth_callback(
    provider: str,
    session: SessionDep,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
):
    """
    Finish a provider sign-in.

    The state is spent before the code is exchanged, so a failed exchange
    cannot be retried with the same state.
    """
    oauth = get_provider(provider)
    if error:
        raise ValidationError("Sign-in was cancelled")
    if not code or not state:
        raise ValidationError("Missing code or state")

    await consume_state(session, state, oauth.name)
    await session.commit()

    profile = await fetch_profile(oauth, code)
    user = await sign_in_with_profile(session, oauth.name, profile)
    await session.commit()

    return _token_response(user, create_session_token(user))


@router.get("/session", response_model=SessionResponse)
async def get_session_info(session: SessionDep, token: BearerToken):
    """
    Describe the current session.

    With ``session_reset_on_stale_read`` enabled, a session older than the
    warning window is reissued here and the new token is returned.
    """
    try:
        info = read_session(token)
        user = await verify_token(session, token)
    except AuthError as e:
        raise _unauthorized("Invalid or expired session") from e

    if settings.session_reset_on_stale_read and is_stale(info):
        logger.debug(f"Reissuing stale session for user {user.id}")
        return _token_response(user, create_session_token(user))

    return SessionResponse(
        user=UserRead.model_validate(user),
        created_at=info.created_at,
        expires_at=info.expires_at,
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    session: SessionDep,
    token: BearerToken,
):
    """
    Renew the current session.

    The renewed token expires strictly later than the one presented.
    """
    try:
        user = await verify_token(session, token)
        new_token = renew_session(token)
    except AuthError as e:
        raise _unauthorized("Invalid or expired session") from e

    return _token_response(user, new_token)


@router.post("/logout", response_model=SuccessResponse)
async def logout():
    """
    Logout endpoint.

    Sessions are stateless JWTs, so signing out is the client discarding its token.
    """
    return SuccessResponse()


@router.get("/me", response_model=UserRead)
async def get_current_user_info(user: CurrentUser):
    """Get current authenticated user info."""
    return UserRead.model_validate(user)
