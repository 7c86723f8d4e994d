"""
auth/models.py -- Domain dataclasses and enums for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; the store, service and routes do the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum


class UserVerifyStatus(IntEnum):
    """Account verification state, persisted as an integer column.

    unverified -> verified is one-way. Any state -> banned is administrative
    and no token flow may undo it.
    """

    unverified = 0
    verified = 1
    banned = 2


class TokenType(str, Enum):
    access = "access"
    refresh = "refresh"
    email_verify = "email_verify"
    forgot_password = "forgot_password"


@dataclass
class User:
    """An account holder.

    password always holds a bcrypt hash. email_verify_token is set at
    registration (and on resend) and cleared once the email is verified.
    forgot_password_token holds the single outstanding reset token; a new
    forgot-password request overwrites it, which is what revokes the old one.
    """

    id: str
    name: str
    email: str
    password: str  # bcrypt hash
    date_of_birth: str  # ISO 8601 date
    verify: UserVerifyStatus = UserVerifyStatus.unverified
    email_verify_token: str | None = None
    forgot_password_token: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class RefreshToken:
    """A refresh token that is currently redeemable.

    Presence of the row is what makes the token usable: logout and rotation
    delete it, after which the signature alone no longer suffices.
    """

    token: str
    user_id: str
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class TokenPayload:
    user_id: str
    token_type: TokenType
    issued_at: datetime
    expires_at: datetime
    token_id: str  # jti


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class RegisterResult:
    user_id: str
    tokens: TokenPair


@dataclass(frozen=True)
class VerifyEmailResult:
    user_id: str
    already_verified: bool = False
