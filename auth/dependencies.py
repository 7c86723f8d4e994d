"""
auth/dependencies.py -- FastAPI Depends() helpers: the per-route validation pipelines.

Each *_validator below is a Pipeline instance. A route declares it with
Depends() and receives the resulting RequestContext:

    @router.post("/logout")
    async def logout(
        auth_ctx: RequestContext = Depends(access_token_validator),
        ctx: RequestContext = Depends(refresh_token_validator),
    ): ...

Token checks delegate decoding and store lookups to AuthService so the rules
for what makes a token acceptable live in one place; the pipeline only
decides *when* they run (before the handler, first failure wins).

access_token_validator is the guard for every protected route. It decodes
the bearer token against the access secret and performs no store lookup.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi because this module is part
  of the FastAPI dependency injection system.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request

from auth import messages
from auth.errors import AuthenticationError, ConflictError, NotFoundError
from auth.service import AuthService
from auth.validation import (
    Custom,
    FieldRule,
    IsEmail,
    IsISO8601,
    IsString,
    Length,
    Matches,
    MaxBytes,
    Pipeline,
    RequestContext,
    Required,
    StrongPassword,
    Trim,
)


def get_auth_service(request: Request) -> AuthService:
    """Return the AuthService built in the lifespan."""
    return request.app.state.auth_service


# ---------------------------------------------------------------------------
# Reusable field rules
# ---------------------------------------------------------------------------


def _email_checks() -> list:
    return [
        Trim(),
        Required(messages.EMAIL_IS_REQUIRED),
        IsEmail(messages.EMAIL_INVALID),
    ]


def _password_checks() -> list:
    return [
        Required(messages.PASSWORD_IS_REQUIRED),
        IsString(messages.PASSWORD_MUST_BE_STRING),
        Length(messages.PASSWORD_LENGTH, min_length=6, max_length=50),
        MaxBytes(messages.PASSWORD_LENGTH),
        StrongPassword(messages.PASSWORD_MUST_BE_STRONG),
    ]


def _confirm_password_checks() -> list:
    return [
        Required(messages.CONFIRM_PASSWORD_IS_REQUIRED),
        IsString(messages.CONFIRM_PASSWORD_MUST_BE_STRING),
        Length(messages.CONFIRM_PASSWORD_LENGTH, min_length=6, max_length=50),
        MaxBytes(messages.CONFIRM_PASSWORD_LENGTH),
        StrongPassword(messages.CONFIRM_PASSWORD_MUST_BE_STRONG),
        Matches("password", messages.CONFIRM_PASSWORD_NOT_MATCH),
    ]


# ---------------------------------------------------------------------------
# Store-dependent checks
# ---------------------------------------------------------------------------


async def _email_not_registered(value: str, ctx: RequestContext) -> None:
    if await ctx.auth.email_exists(value):
        raise ConflictError(messages.EMAIL_ALREADY_EXISTS)


async def _decode_bearer(value: Any, ctx: RequestContext) -> str:
    """Authorization: Bearer <token> -> decoded access payload on the context."""
    parts = (value or "").split(" ")
    token = parts[1] if len(parts) > 1 and parts[0] == "Bearer" else ""
    if not token:
        raise AuthenticationError(messages.ACCESS_TOKEN_IS_REQUIRED)
    ctx.decoded_authorization = await ctx.auth.verify_access_token(token)
    return token


async def _refresh_token_in_store(value: str, ctx: RequestContext) -> None:
    ctx.decoded_refresh_token = await ctx.auth.verify_refresh_token(value)


async def _decode_email_verify_token(value: str, ctx: RequestContext) -> None:
    payload, user = await ctx.auth.verify_email_token(value)
    ctx.decoded_email_verify_token = payload
    ctx.user = user


async def _user_for_email(value: str, ctx: RequestContext) -> None:
    user = await ctx.auth.store.find_user_by_email(value)
    if user is None:
        raise NotFoundError(messages.USER_NOT_FOUND)
    ctx.user = user


async def _forgot_password_token_current(value: str, ctx: RequestContext) -> None:
    ctx.user = await ctx.auth.verify_forgot_password_token(value)


def _forgot_password_token_rule() -> FieldRule:
    return FieldRule(
        "forgot_password_token",
        [
            Trim(),
            Required(messages.FORGOT_PASSWORD_TOKEN_IS_REQUIRED, error_cls=AuthenticationError),
            IsString(messages.FORGOT_PASSWORD_TOKEN_INVALID, error_cls=AuthenticationError),
            Custom(_forgot_password_token_current),
        ],
    )


# ---------------------------------------------------------------------------
# Route pipelines
# ---------------------------------------------------------------------------

register_validator = Pipeline(
    FieldRule(
        "name",
        [
            Trim(),
            Required(messages.NAME_IS_REQUIRED),
            IsString(messages.NAME_MUST_BE_STRING),
            Length(messages.NAME_LENGTH, min_length=1, max_length=100),
        ],
    ),
    FieldRule("email", [*_email_checks(), Custom(_email_not_registered)]),
    FieldRule("password", _password_checks()),
    FieldRule("confirm_password", _confirm_password_checks()),
    FieldRule("date_of_birth", [IsISO8601(messages.DATE_OF_BIRTH_MUST_BE_ISO8601)]),
)

login_validator = Pipeline(
    FieldRule("email", _email_checks()),
    FieldRule(
        "password",
        [
            Required(messages.PASSWORD_IS_REQUIRED),
            IsString(messages.PASSWORD_MUST_BE_STRING),
            Length(messages.PASSWORD_LENGTH, min_length=6, max_length=50),
        ],
    ),
)

access_token_validator = Pipeline(
    FieldRule("Authorization", [Trim(), Custom(_decode_bearer)], location="headers"),
)

refresh_token_validator = Pipeline(
    FieldRule(
        "refresh_token",
        [
            Trim(),
            Required(messages.REFRESH_TOKEN_IS_REQUIRED, error_cls=AuthenticationError),
            IsString(messages.REFRESH_TOKEN_INVALID, error_cls=AuthenticationError),
            Custom(_refresh_token_in_store),
        ],
    ),
)

email_verify_token_validator = Pipeline(
    FieldRule(
        "email_verify_token",
        [
            Trim(),
            Required(messages.EMAIL_VERIFY_TOKEN_IS_REQUIRED, error_cls=AuthenticationError),
            IsString(messages.EMAIL_VERIFY_TOKEN_INVALID, error_cls=AuthenticationError),
            Custom(_decode_email_verify_token),
        ],
    ),
)

forgot_password_validator = Pipeline(
    FieldRule("email", [*_email_checks(), Custom(_user_for_email)]),
)

verify_forgot_password_token_validator = Pipeline(_forgot_password_token_rule())

reset_password_validator = Pipeline(
    _forgot_password_token_rule(),
    FieldRule("password", _password_checks()),
    FieldRule("confirm_password", _confirm_password_checks()),
)
