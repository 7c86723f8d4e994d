"""
api/routes/v1/users.py -- Account and token REST endpoints.

Routes:
  POST /api/v1/users/register               -- create account; returns token pair + user id
  POST /api/v1/users/login                  -- email/password login; returns token pair
  POST /api/v1/users/logout                 -- revoke a refresh token (requires access token)
  POST /api/v1/users/refresh-token          -- rotate a refresh token; returns a new pair
  POST /api/v1/users/verify-email           -- consume an email-verify token
  POST /api/v1/users/resend-verify-email    -- mint a new email-verify token (requires access token)
  POST /api/v1/users/forgot-password        -- mint a forgot-password token for an email
  POST /api/v1/users/verify-forgot-password -- check a forgot-password token is current
  POST /api/v1/users/reset-password         -- set a new password with a forgot-password token
  GET  /api/v1/users/me                     -- profile of the authenticated user

Handlers are thin: the validation pipeline has already rejected bad input
and bad tokens by the time a handler runs, and the handler only translates
the RequestContext into one AuthService call.

Security:
  [H2] POST /login and /forgot-password are rate-limited per IP.
  [M5] Cache-Control: no-store on every response that carries tokens.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import MeResponse, MessageResponse, RegisterResponse, TokenPairResponse
from auth import messages
from auth.dependencies import (
    access_token_validator,
    email_verify_token_validator,
    forgot_password_validator,
    get_auth_service,
    login_validator,
    refresh_token_validator,
    register_validator,
    reset_password_validator,
    verify_forgot_password_token_validator,
)
from auth.errors import AuthenticationError
from auth.service import AuthService
from auth.validation import RequestContext
from core.config import get_settings

# Auth policy:
# - POST /users/register, /login, /refresh-token, /verify-email,
#   /forgot-password, /verify-forgot-password, /reset-password: public --
#   the token or credential in the body is the proof
# - POST /users/logout, /resend-verify-email, GET /users/me: require a valid
#   access token (access_token_validator)
router = APIRouter()


def _rate_limit() -> str:
    return get_settings().login_rate_limit


def _no_store(content: dict, status_code: int = 200) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=content)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Registration and login
# ---------------------------------------------------------------------------


@router.post("/users/register", response_model=RegisterResponse, status_code=201)
async def register(
    ctx: RequestContext = Depends(register_validator),
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Create an Unverified account and sign the user in.

    The email-verify token is stored on the new record; delivering it is
    outside this service.
    """
    values = ctx.values
    result = await auth.register(
        name=values["name"],
        email=values["email"],
        password=values["password"],
        date_of_birth=values["date_of_birth"],
    )
    body = RegisterResponse(
        user_id=result.user_id,
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
    )
    return _no_store(body.model_dump(), status_code=201)


@limiter.limit(_rate_limit)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.post("/users/login", response_model=TokenPairResponse)
async def login(
    request: Request,
    ctx: RequestContext = Depends(login_validator),
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Exchange email + password for a new token pair.

    The same EMAIL_OR_PASSWORD_INCORRECT error covers unknown email and wrong
    password so account existence is not revealed.
    """
    tokens = await auth.login(ctx.values["email"], ctx.values["password"])
    return _no_store(TokenPairResponse.from_pair(tokens).model_dump())


# ---------------------------------------------------------------------------
# Refresh token lifecycle
# ---------------------------------------------------------------------------


@router.post("/users/logout", response_model=MessageResponse)
async def logout(
    auth_ctx: RequestContext = Depends(access_token_validator),
    ctx: RequestContext = Depends(refresh_token_validator),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Revoke the given refresh token. It must belong to the caller."""
    if ctx.decoded_refresh_token.user_id != auth_ctx.decoded_authorization.user_id:
        raise AuthenticationError(messages.REFRESH_TOKEN_INVALID, field="refresh_token")
    await auth.logout(ctx.values["refresh_token"])
    return MessageResponse(message=messages.LOGOUT_SUCCESS)


@router.post("/users/refresh-token", response_model=TokenPairResponse)
async def refresh_token(
    ctx: RequestContext = Depends(refresh_token_validator),
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Rotate: the presented refresh token is consumed and a new pair returned."""
    tokens = await auth.refresh_token(ctx.values["refresh_token"])
    return _no_store(TokenPairResponse.from_pair(tokens).model_dump())


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------


@router.post("/users/verify-email", response_model=MessageResponse)
async def verify_email(
    ctx: RequestContext = Depends(email_verify_token_validator),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Mark the email verified. Repeating the call is a harmless 200."""
    result = await auth.verify_email(ctx.values["email_verify_token"])
    message = messages.EMAIL_ALREADY_VERIFIED_BEFORE if result.already_verified else messages.EMAIL_VERIFY_SUCCESS
    return MessageResponse(message=message, user_id=result.user_id)


@router.post("/users/resend-verify-email", response_model=MessageResponse)
async def resend_verify_email(
    auth_ctx: RequestContext = Depends(access_token_validator),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Replace the stored email-verify token; earlier ones stop working."""
    result = await auth.resend_verify_email(auth_ctx.decoded_authorization.user_id)
    message = (
        messages.EMAIL_ALREADY_VERIFIED_BEFORE if result.already_verified else messages.RESEND_VERIFY_EMAIL_SUCCESS
    )
    return MessageResponse(message=message, user_id=result.user_id)


# ---------------------------------------------------------------------------
# Forgot / reset password
# ---------------------------------------------------------------------------


@limiter.limit(_rate_limit)  # [H2]
@router.post("/users/forgot-password", response_model=MessageResponse)
async def forgot_password(
    request: Request,
    ctx: RequestContext = Depends(forgot_password_validator),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth.forgot_password(ctx.values["email"])
    return MessageResponse(message=messages.CHECK_EMAIL_TO_RESET_PASSWORD)


@router.post("/users/verify-forgot-password", response_model=MessageResponse)
async def verify_forgot_password(
    ctx: RequestContext = Depends(verify_forgot_password_token_validator),
) -> MessageResponse:
    """The pipeline already proved the token is current; report the owner."""
    return MessageResponse(message=messages.VERIFY_FORGOT_PASSWORD_SUCCESS, user_id=ctx.user.id)


@router.post("/users/reset-password", response_model=MessageResponse)
async def reset_password(
    ctx: RequestContext = Depends(reset_password_validator),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth.reset_password(ctx.values["forgot_password_token"], ctx.values["password"])
    return MessageResponse(message=messages.RESET_PASSWORD_SUCCESS)


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/users/me", response_model=MeResponse)
async def me(
    auth_ctx: RequestContext = Depends(access_token_validator),
    auth: AuthService = Depends(get_auth_service),
) -> MeResponse:
    """Return the profile of the user named by the access token."""
    user = await auth.get_profile(auth_ctx.decoded_authorization.user_id)
    return MeResponse.from_user(user)
