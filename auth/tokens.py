"""
auth/tokens.py -- JWT codec and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Every token carries sub (user id), token_type,
       iat, exp and a random jti. The jti makes two tokens minted for the same
       user in the same second distinct, which the refresh-token store relies
       on (token strings are UNIQUE there).

  One secret per kind [S1]: TokenCodec signs each TokenType with its own
       secret from Settings. A token presented to the wrong endpoint fails
       signature verification before the token_type claim is even read. The
       token_type check is the second, independent layer.

  Error classes: verify_token() distinguishes MalformedToken (not a JWT at
       all), InvalidTokenSignature (wrong key or tampered) and TokenExpired.
       The service layer maps all three to AuthenticationError.

  Passwords: bcrypt directly (no passlib wrapper). DUMMY_HASH lets the
       service run bcrypt even for unknown emails so response time does not
       reveal whether an account exists [C1].

Layer rule: no imports from api/. core.config is imported for typing only;
the Settings instance is passed in by the caller.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import TokenPayload, TokenType

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("accounts.auth")

_ALGORITHM = "HS256"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TokenDecodeError(Exception):
    """Base class for every reason a token fails to verify."""


class MalformedToken(TokenDecodeError):
    pass


class InvalidTokenSignature(TokenDecodeError):
    pass


class TokenExpired(TokenDecodeError):
    pass


class TokenKindMismatch(TokenDecodeError):
    """Signature is valid but the token_type claim names another kind."""


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt rejects input longer than 72 bytes (older releases truncate it).
    The password pipelines enforce that bound with MaxBytes, since 50
    characters of non-ASCII text can exceed it.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization dummy hash [C1]. Computed once at module load so the
# first login attempt is not measurably slower than later ones.
DUMMY_HASH: str = hash_password("accounts_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def issue_token(subject: str, kind: TokenType, ttl: timedelta, secret: str) -> str:
    """Encode a signed JWT for `subject` tagged with `kind`, valid for `ttl`."""
    now = datetime.now(timezone.utc)
    claims = {
        "sub": subject,
        "token_type": kind.value,
        "iat": now,
        "exp": now + ttl,
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(claims, secret, algorithm=_ALGORITHM)


def verify_token(token: str, secret: str) -> TokenPayload:
    """Decode and verify a JWT signed with `secret`.

    Raises MalformedToken, InvalidTokenSignature or TokenExpired. The
    signature is checked before expiry, so an expired token signed with a
    different secret reports InvalidTokenSignature.
    """
    try:
        claims = jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpired(str(exc)) from exc
    except JWTError as exc:
        if _is_malformed(token):
            raise MalformedToken(str(exc)) from exc
        raise InvalidTokenSignature(str(exc)) from exc

    try:
        return TokenPayload(
            user_id=claims["sub"],
            token_type=TokenType(claims["token_type"]),
            issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
            token_id=claims.get("jti", ""),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedToken(f"Missing or invalid claim: {exc}") from exc


def _is_malformed(token: str) -> bool:
    try:
        jwt.get_unverified_header(token)
        jwt.get_unverified_claims(token)
    except JWTError:
        return True
    return False


# ---------------------------------------------------------------------------
# Codec bound to configuration
# ---------------------------------------------------------------------------


class TokenCodec:
    """Issues and verifies tokens with a per-kind secret and lifetime.

    Stateless apart from the immutable secret/TTL tables built from Settings
    at construction time.

    Usage:
        codec = TokenCodec(get_settings())
        token = codec.issue(user.id, TokenType.access)
        payload = codec.verify(token, TokenType.access)
    """

    def __init__(self, settings: Settings) -> None:
        self._secrets: dict[TokenType, str] = {
            TokenType.access: settings.jwt_secret_access_token,
            TokenType.refresh: settings.jwt_secret_refresh_token,
            TokenType.email_verify: settings.jwt_secret_email_verify_token,
            TokenType.forgot_password: settings.jwt_secret_forgot_password_token,
        }
        self._ttls: dict[TokenType, timedelta] = {
            TokenType.access: timedelta(seconds=settings.access_token_expire_seconds),
            TokenType.refresh: timedelta(seconds=settings.refresh_token_expire_seconds),
            TokenType.email_verify: timedelta(seconds=settings.email_verify_token_expire_seconds),
            TokenType.forgot_password: timedelta(seconds=settings.forgot_password_token_expire_seconds),
        }

    def issue(self, user_id: str, kind: TokenType) -> str:
        return issue_token(user_id, kind, self._ttls[kind], self._secrets[kind])

    def verify(self, token: str, kind: TokenType) -> TokenPayload:
        """Verify against `kind`'s secret and require a matching token_type claim."""
        payload = verify_token(token, self._secrets[kind])
        if payload.token_type is not kind:
            logger.warning("Token kind mismatch: expected %s, got %s", kind.value, payload.token_type.value)
            raise TokenKindMismatch(f"Expected {kind.value} token, got {payload.token_type.value}")
        return payload
