"""
auth/validation.py -- Declarative, async request validation pipelines.

A Pipeline is an ordered list of FieldRules; a FieldRule names one request
field and an ordered list of Check objects. The runner walks fields and checks
in declaration order and stops at the first failure, raising an AuthError
tagged with the field name. Later checks may therefore assume earlier ones
passed (Matches reads the already-validated password, token lookups run only
after the token is known to be present).

Check classes:
  syntactic    Trim, Required, IsString, IsEmail, Length, MaxBytes,
               StrongPassword, IsISO8601
  cross-field  Matches
  async/store  Custom -- wraps a coroutine that may call AuthService and
               record what it learned on the RequestContext

Per-request isolation: every request gets a fresh RequestContext. Checks
write decoded payloads and sanitized values there, and the Pipeline returns
it to the route handler through FastAPI's Depends(). Nothing is stored on the
shared Request object or on the Pipeline itself.

Layer rule: no imports from api/. fastapi is imported for Request because a
Pipeline instance is a FastAPI dependency.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from email_validator import EmailNotValidError, validate_email
from fastapi import Request

from auth import messages
from auth.errors import AuthError, ValidationError
from auth.models import TokenPayload, User

if TYPE_CHECKING:
    from auth.service import AuthService

# YYYY-MM-DD or YYYYMMDD, optionally followed by T and a time part.
_ISO8601_SHAPE = re.compile(r"^\d{4}(-?)\d{2}\1\d{2}(T[0-9:.,+\-Z]+)?\Z")


@dataclass
class RequestContext:
    """Everything the pipeline learned about one request.

    values holds sanitized field values keyed by field name. The decoded_*
    attributes are filled by token checks; user by checks that load a record.
    """

    body: dict[str, Any]
    headers: Mapping[str, str]
    auth: AuthService | None = None
    values: dict[str, Any] = field(default_factory=dict)
    decoded_authorization: TokenPayload | None = None
    decoded_refresh_token: TokenPayload | None = None
    decoded_email_verify_token: TokenPayload | None = None
    user: User | None = None


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


class Check:
    """One validation step. Returns the (possibly sanitized) value or raises.

    error_cls lets a check fail with something other than a 422, e.g. a
    missing token is an AuthenticationError.
    """

    def __init__(self, message: str = "", error_cls: type[AuthError] = ValidationError) -> None:
        self.message = message
        self.error_cls = error_cls

    async def __call__(self, value: Any, ctx: RequestContext) -> Any:
        raise NotImplementedError

    def fail(self) -> AuthError:
        return self.error_cls(self.message)


class Trim(Check):
    async def __call__(self, value: Any, ctx: RequestContext) -> Any:
        return value.strip() if isinstance(value, str) else value


class Required(Check):
    async def __call__(self, value: Any, ctx: RequestContext) -> Any:
        if value is None or value == "":
            raise self.fail()
        return value


class IsString(Check):
    async def __call__(self, value: Any, ctx: RequestContext) -> Any:
        if not isinstance(value, str):
            raise self.fail()
        return value


class IsEmail(Check):
    async def __call__(self, value: Any, ctx: RequestContext) -> Any:
        if not isinstance(value, str):
            raise self.fail()
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError as exc:
            raise self.error_cls(self.message, detail=str(exc)) from exc
        return value


class Length(Check):
    def __init__(self, message: str, min_length: int = 0, max_length: int | None = None) -> None:
        super().__init__(message)
        self.min_length = min_length
        self.max_length = max_length

    async def __call__(self, value: Any, ctx: RequestContext) -> Any:
        size = len(value) if isinstance(value, str) else -1
        if size < self.min_length or (self.max_length is not None and size > self.max_length):
            raise self.fail()
        return value


class MaxBytes(Check):
    """UTF-8 encoded size cap. bcrypt refuses (or truncates) input past 72 bytes."""

    def __init__(self, message: str, max_bytes: int = 72) -> None:
        super().__init__(message)
        self.max_bytes = max_bytes

    async def __call__(self, value: Any, ctx: RequestContext) -> Any:
        if not isinstance(value, str) or len(value.encode("utf-8")) > self.max_bytes:
            raise self.fail()
        return value


class StrongPassword(Check):
    """At least min_length chars with one lowercase, uppercase, digit and symbol each."""

    def __init__(self, message: str, min_length: int = 6) -> None:
        super().__init__(message)
        self.min_length = min_length

    async def __call__(self, value: Any, ctx: RequestContext) -> Any:
        if not isinstance(value, str) or len(value) < self.min_length:
            raise self.fail()
        classes = (
            any(c.islower() for c in value),
            any(c.isupper() for c in value),
            any(c.isdigit() for c in value),
            any(not c.isalnum() and not c.isspace() for c in value),
        )
        if not all(classes):
            raise self.fail()
        return value


class IsISO8601(Check):
    """Strict ISO 8601 date or datetime; impossible dates such as 2001-02-30 fail.

    The shape is matched first: fromisoformat alone also takes a space (or any
    other character) between date and time.
    """

    async def __call__(self, value: Any, ctx: RequestContext) -> Any:
        if not isinstance(value, str) or not _ISO8601_SHAPE.match(value):
            raise self.fail()
        try:
            datetime.fromisoformat(value)
        except ValueError as exc:
            raise self.fail() from exc
        return value


class Matches(Check):
    """Value must equal another, already-validated field."""

    def __init__(self, other: str, message: str) -> None:
        super().__init__(message)
        self.other = other

    async def __call__(self, value: Any, ctx: RequestContext) -> Any:
        if value != ctx.values.get(self.other, ctx.body.get(self.other)):
            raise self.fail()
        return value


class Custom(Check):
    """Run an async callable(value, ctx). It raises AuthError to reject."""

    def __init__(self, fn: Callable[[Any, RequestContext], Awaitable[Any]]) -> None:
        super().__init__()
        self.fn = fn

    async def __call__(self, value: Any, ctx: RequestContext) -> Any:
        result = await self.fn(value, ctx)
        return value if result is None else result


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldRule:
    name: str
    checks: Sequence[Check]
    location: str = "body"  # "body" or "headers"


class Pipeline:
    """Ordered field rules, usable directly as a FastAPI dependency.

    Usage:
        login_validator = Pipeline(
            FieldRule("email", [Trim(), Required(EMAIL_IS_REQUIRED), IsEmail(EMAIL_INVALID)]),
        )

        @router.post("/login")
        async def login(ctx: RequestContext = Depends(login_validator)): ...
    """

    def __init__(self, *rules: FieldRule) -> None:
        self.rules: tuple[FieldRule, ...] = rules

    async def run(self, ctx: RequestContext) -> RequestContext:
        for rule in self.rules:
            source = ctx.headers if rule.location == "headers" else ctx.body
            value = source.get(rule.name)
            for check in rule.checks:
                try:
                    value = await check(value, ctx)
                except AuthError as exc:
                    if exc.field is None:
                        exc.field = rule.name
                    raise
            ctx.values[rule.name] = value
        return ctx

    async def __call__(self, request: Request) -> RequestContext:
        body: dict[str, Any] = {}
        if any(rule.location == "body" for rule in self.rules):
            body = await _read_json_object(request)
        ctx = RequestContext(
            body=body,
            headers=request.headers,
            auth=request.app.state.auth_service,
        )
        return await self.run(ctx)


async def _read_json_object(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as exc:
        raise ValidationError(messages.BODY_MUST_BE_JSON_OBJECT, field="body") from exc
    if not isinstance(body, dict):
        raise ValidationError(messages.BODY_MUST_BE_JSON_OBJECT, field="body")
    return body
