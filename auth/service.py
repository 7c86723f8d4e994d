"""
auth/service.py -- Account and token lifecycle business logic.

AuthService alone decides when each token kind is minted or revoked:

  access          minted with every new pair; never stored, never revoked
                  (stateless, expires on its own)
  refresh         minted with every new pair and persisted; revoked by logout,
                  rotation and password reset
  email_verify    minted at registration and on resend; stored on the user;
                  cleared when the email is verified
  forgot_password minted per forgot-password request; stored on the user,
                  overwriting (and so revoking) any earlier one; cleared by a
                  successful reset

Every failure is raised as an auth.errors subclass. Codec errors are always
translated to AuthenticationError here, so callers never see TokenDecodeError.

bcrypt runs in the thread pool; it is deliberately slow and would otherwise
stall the event loop for every concurrent request.

Layer rule: no imports from api/ or fastapi.
"""

from __future__ import annotations

import logging
import uuid

from starlette.concurrency import run_in_threadpool

from auth import messages
from auth.errors import AuthenticationError, ConflictError, NotFoundError
from auth.models import RegisterResult, TokenPair, TokenPayload, TokenType, User, UserVerifyStatus, VerifyEmailResult
from auth.store import CredentialStore, DuplicateEmail
from auth.tokens import DUMMY_HASH, TokenCodec, TokenDecodeError, TokenExpired, hash_password, verify_password

logger = logging.getLogger("accounts.auth")

# (invalid, expired) message per token kind
_DECODE_MESSAGES: dict[TokenType, tuple[str, str]] = {
    TokenType.access: (messages.ACCESS_TOKEN_INVALID, messages.ACCESS_TOKEN_EXPIRED),
    TokenType.refresh: (messages.REFRESH_TOKEN_INVALID, messages.REFRESH_TOKEN_EXPIRED),
    TokenType.email_verify: (messages.EMAIL_VERIFY_TOKEN_INVALID, messages.EMAIL_VERIFY_TOKEN_EXPIRED),
    TokenType.forgot_password: (messages.FORGOT_PASSWORD_TOKEN_INVALID, messages.FORGOT_PASSWORD_TOKEN_EXPIRED),
}


class AuthService:
    """Registration, login, logout, refresh and the email/password token flows.

    Holds references to the store and codec only; no per-request state.
    """

    def __init__(self, store: CredentialStore, codec: TokenCodec) -> None:
        self.store = store
        self.codec = codec

    # ------------------------------------------------------------------
    # Token decoding
    # ------------------------------------------------------------------

    def decode(self, token: str, kind: TokenType) -> TokenPayload:
        """Verify `token` as `kind`, translating codec errors to AuthenticationError."""
        invalid, expired = _DECODE_MESSAGES[kind]
        try:
            return self.codec.verify(token, kind)
        except TokenExpired as exc:
            raise AuthenticationError(expired, detail=str(exc)) from exc
        except TokenDecodeError as exc:
            raise AuthenticationError(invalid, detail=str(exc)) from exc

    async def verify_access_token(self, token: str) -> TokenPayload:
        """Stateless check: signature, expiry and kind. No store lookup."""
        return self.decode(token, TokenType.access)

    async def verify_refresh_token(self, token: str) -> TokenPayload:
        """Require a valid refresh signature AND presence in the store.

        Store absence wins over a valid signature: a logged-out or rotated
        token is rejected even though it still verifies cryptographically.
        """
        payload = self.decode(token, TokenType.refresh)
        if await self.store.find_refresh_token(token) is None:
            logger.warning("Refresh token reuse or unknown token for user %s", payload.user_id)
            raise AuthenticationError(messages.REFRESH_TOKEN_IS_USED_OR_NOT_EXIST)
        return payload

    def _issue_pair(self, user_id: str) -> TokenPair:
        return TokenPair(
            access_token=self.codec.issue(user_id, TokenType.access),
            refresh_token=self.codec.issue(user_id, TokenType.refresh),
        )

    # ------------------------------------------------------------------
    # Registration / login / logout / refresh
    # ------------------------------------------------------------------

    async def email_exists(self, email: str) -> bool:
        return await self.store.email_exists(email)

    async def register(self, name: str, email: str, password: str, date_of_birth: str) -> RegisterResult:
        """Create an Unverified user, store its email-verify token, return a fresh pair.

        The id is generated here, before the insert, so the email-verify token
        stored on the new record already names it.
        """
        user_id = uuid.uuid4().hex
        hashed = await run_in_threadpool(hash_password, password)
        user = User(
            id=user_id,
            name=name,
            email=email,
            password=hashed,
            date_of_birth=date_of_birth,
            verify=UserVerifyStatus.unverified,
            email_verify_token=self.codec.issue(user_id, TokenType.email_verify),
        )
        try:
            await self.store.create_user(user)
        except DuplicateEmail as exc:
            raise ConflictError(messages.EMAIL_ALREADY_EXISTS, field="email") from exc

        tokens = self._issue_pair(user_id)
        await self.store.insert_refresh_token(tokens.refresh_token, user_id)
        logger.info("Registered user %s (email verification pending)", user_id)
        return RegisterResult(user_id=user_id, tokens=tokens)

    async def authenticate(self, email: str, password: str) -> User | None:
        """Return the user whose email and password match, else None.

        bcrypt runs against DUMMY_HASH for unknown emails so timing does not
        reveal which accounts exist [C1].
        """
        user = await self.store.find_user_by_email(email)
        hashed = user.password if user is not None else DUMMY_HASH
        matches = await run_in_threadpool(verify_password, password, hashed)
        if user is None or not matches:
            return None
        return user

    async def login(self, email: str, password: str) -> TokenPair:
        """Mint and persist a new pair. Verification status does not gate login; a ban does."""
        user = await self.authenticate(email, password)
        if user is None:
            logger.info("Failed login attempt")
            raise AuthenticationError(messages.EMAIL_OR_PASSWORD_INCORRECT, field="email")
        if user.verify is UserVerifyStatus.banned:
            raise AuthenticationError(messages.USER_BANNED)

        tokens = self._issue_pair(user.id)
        await self.store.insert_refresh_token(tokens.refresh_token, user.id)
        logger.info("User %s logged in", user.id)
        return tokens

    async def logout(self, refresh_token: str) -> None:
        if not await self.store.delete_refresh_token(refresh_token):
            raise AuthenticationError(messages.REFRESH_TOKEN_IS_USED_OR_NOT_EXIST, field="refresh_token")
        logger.info("Refresh token revoked by logout")

    async def refresh_token(self, refresh_token: str) -> TokenPair:
        """Rotate: consume `refresh_token` and return a brand-new pair.

        When two requests race on the same token, the store's DELETE row count
        picks one winner; the loser gets REFRESH_TOKEN_IS_USED_OR_NOT_EXIST.
        """
        payload = await self.verify_refresh_token(refresh_token)
        user = await self.store.find_user_by_id(payload.user_id)
        if user is None:
            raise AuthenticationError(messages.USER_NOT_FOUND)
        if user.verify is UserVerifyStatus.banned:
            raise AuthenticationError(messages.USER_BANNED)

        tokens = self._issue_pair(user.id)
        if not await self.store.rotate_refresh_token(refresh_token, tokens.refresh_token, user.id):
            logger.warning("Refresh token for user %s consumed concurrently", user.id)
            raise AuthenticationError(messages.REFRESH_TOKEN_IS_USED_OR_NOT_EXIST, field="refresh_token")
        return tokens

    # ------------------------------------------------------------------
    # Email verification
    # ------------------------------------------------------------------

    async def verify_email_token(self, token: str) -> tuple[TokenPayload, User]:
        payload = self.decode(token, TokenType.email_verify)
        user = await self.store.find_user_by_id(payload.user_id)
        if user is None:
            raise NotFoundError(messages.USER_NOT_FOUND, status_code=401)
        return payload, user

    async def verify_email(self, token: str) -> VerifyEmailResult:
        """Unverified -> Verified, clearing the stored token.

        Re-submitting after verification is an idempotent success reported as
        already_verified. While still Unverified, only the token currently
        stored on the user is accepted, so a resend revokes earlier tokens.
        """
        _, user = await self.verify_email_token(token)
        if user.verify is UserVerifyStatus.verified:
            return VerifyEmailResult(user_id=user.id, already_verified=True)
        if user.verify is UserVerifyStatus.banned:
            raise AuthenticationError(messages.USER_BANNED)
        if user.email_verify_token != token:
            raise AuthenticationError(messages.EMAIL_VERIFY_TOKEN_INVALID, field="email_verify_token")

        await self.store.update_user(user.id, verify=UserVerifyStatus.verified, email_verify_token=None)
        logger.info("User %s verified their email", user.id)
        return VerifyEmailResult(user_id=user.id)

    async def resend_verify_email(self, user_id: str) -> VerifyEmailResult:
        user = await self.get_profile(user_id)
        if user.verify is UserVerifyStatus.verified:
            return VerifyEmailResult(user_id=user.id, already_verified=True)
        if user.verify is UserVerifyStatus.banned:
            raise AuthenticationError(messages.USER_BANNED)

        await self.store.update_user(user.id, email_verify_token=self.codec.issue(user.id, TokenType.email_verify))
        logger.info("Issued a new email verify token for user %s", user.id)
        return VerifyEmailResult(user_id=user.id)

    # ------------------------------------------------------------------
    # Forgot / reset password
    # ------------------------------------------------------------------

    async def forgot_password(self, email: str) -> str:
        """Mint a forgot-password token and store it, overwriting any earlier one.

        Returns the user id. Delivering the token is outside this service.
        """
        user = await self.store.find_user_by_email(email)
        if user is None:
            raise NotFoundError(messages.USER_NOT_FOUND, field="email")

        token = self.codec.issue(user.id, TokenType.forgot_password)
        await self.store.update_user(user.id, forgot_password_token=token)
        logger.info("Issued a forgot password token for user %s", user.id)
        return user.id

    async def verify_forgot_password_token(self, token: str) -> User:
        """Accept only the token currently stored on the user.

        The equality check is the sole revocation mechanism: a newer request
        silently invalidates an older, unexpired token.
        """
        payload = self.decode(token, TokenType.forgot_password)
        user = await self.store.find_user_by_id(payload.user_id)
        if user is None:
            raise NotFoundError(messages.USER_NOT_FOUND, status_code=401)
        if user.forgot_password_token != token:
            raise AuthenticationError(messages.FORGOT_PASSWORD_TOKEN_IS_INVALID, field="forgot_password_token")
        return user

    async def reset_password(self, token: str, password: str) -> None:
        """Set a new password, clear the reset token and revoke all refresh tokens.

        The token is consumed by a conditional update, so concurrent resets
        with the same token cannot both succeed.
        """
        user = await self.verify_forgot_password_token(token)
        hashed = await run_in_threadpool(hash_password, password)
        if not await self.store.replace_password(user.id, token, hashed):
            logger.warning("Forgot password token for user %s consumed concurrently", user.id)
            raise AuthenticationError(messages.FORGOT_PASSWORD_TOKEN_IS_INVALID, field="forgot_password_token")
        revoked = await self.store.delete_refresh_tokens_for_user(user.id)
        logger.info("User %s reset their password (%d refresh tokens revoked)", user.id, revoked)

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def get_profile(self, user_id: str) -> User:
        user = await self.store.find_user_by_id(user_id)
        if user is None:
            raise NotFoundError(messages.USER_NOT_FOUND)
        return user
