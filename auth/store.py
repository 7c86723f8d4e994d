"""
auth/store.py -- SQLAlchemy Core persistence layer for users and refresh tokens.

Pattern: Repository + Data Mapper. CredentialStore is the repository;
_row_to_user / _row_to_refresh_token are the mappers. Service and validation
code never touches SQL directly.

Async surface:
  Every public method is a coroutine. The blocking SQLAlchemy work lives in a
  private sync method and runs in Starlette's thread pool, so a store call is
  a real suspension point for the event loop and concurrent requests are not
  serialized behind one another.

Concurrency:
  The store is the only shared mutable resource in the service. SQLite runs
  in WAL mode and each call checks out its own pooled connection.

  Refresh tokens are consumed with DELETE and the row count decides the
  outcome. Two concurrent consumers of the same token therefore see exactly
  one winner (first-deleter-wins). rotate_refresh_token() deletes the old
  token and inserts the new one inside a single transaction, so the old and
  the new token are never both redeemable after commit.

  replace_password() follows the same rule for password resets: the UPDATE
  is conditional on the presented forgot-password token, and the row count
  says whether this caller consumed it.

  Email uniqueness is a UNIQUE constraint. create_user() also checks first so
  the common case gets a clean DuplicateEmail; a concurrent insert that slips
  past the check hits the constraint and is reported the same way.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from auth.models import RefreshToken, User, UserVerifyStatus

logger = logging.getLogger("accounts.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),  # uuid4 hex, assigned by the service
    Column("name", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", Text, nullable=False),  # bcrypt hash
    Column("date_of_birth", String(32), nullable=False),
    Column("verify", Integer, nullable=False, server_default="0"),  # UserVerifyStatus
    Column("email_verify_token", Text),
    Column("forgot_password_token", Text),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_refresh_tokens = Table(
    "refresh_tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("token", Text, nullable=False, unique=True),
    Column("user_id", String(32), nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
)

# Columns update_user() may touch. id, email and created_at are immutable.
_MUTABLE_USER_FIELDS = frozenset(
    {"name", "password", "date_of_birth", "verify", "email_verify_token", "forgot_password_token"}
)


class DuplicateEmail(Exception):
    """Raised by create_user() when the email is already registered."""


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for User and RefreshToken records.

    Usage:
        store = CredentialStore(settings.database_url)
        await store.create_user(user)
        user = await store.find_user_by_email("a@example.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def find_user_by_email(self, email: str) -> User | None:
        """Exact, case-sensitive match on email."""
        return await run_in_threadpool(self._fetch_user, _users.c.email == email)

    async def find_user_by_id(self, user_id: str) -> User | None:
        return await run_in_threadpool(self._fetch_user, _users.c.id == user_id)

    async def email_exists(self, email: str) -> bool:
        return await run_in_threadpool(self._email_exists, email)

    async def create_user(self, user: User) -> User:
        """Insert a new user and return it with timestamps filled in.

        Raises DuplicateEmail if the email is already registered.
        """
        return await run_in_threadpool(self._insert_user, user)

    async def update_user(self, user_id: str, **fields) -> bool:
        """Update mutable fields on an existing user and stamp updated_at.

        Unknown field names raise ValueError rather than being ignored.
        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - _MUTABLE_USER_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        if "verify" in fields:
            fields["verify"] = int(fields["verify"])
        return await run_in_threadpool(self._update_user, user_id, fields)

    async def replace_password(self, user_id: str, forgot_password_token: str, password: str) -> bool:
        """Set a new password hash and clear forgot_password_token in one UPDATE.

        The row only matches while forgot_password_token is still the stored
        token, so of two concurrent resets with the same token exactly one
        gets True.
        """
        return await run_in_threadpool(self._replace_password, user_id, forgot_password_token, password)

    # ------------------------------------------------------------------
    # Refresh tokens
    # ------------------------------------------------------------------

    async def find_refresh_token(self, token: str) -> RefreshToken | None:
        return await run_in_threadpool(self._fetch_refresh_token, token)

    async def insert_refresh_token(self, token: str, user_id: str) -> int:
        """Persist a newly issued refresh token and return its row id."""
        return await run_in_threadpool(self._insert_refresh_token, token, user_id)

    async def delete_refresh_token(self, token: str) -> bool:
        """Delete a refresh token. Returns True only for the caller that removed it."""
        return await run_in_threadpool(self._delete_refresh_token, token)

    async def rotate_refresh_token(self, old_token: str, new_token: str, user_id: str) -> bool:
        """Replace old_token with new_token in one transaction.

        Returns False, and inserts nothing, when old_token was already gone.
        """
        return await run_in_threadpool(self._rotate_refresh_token, old_token, new_token, user_id)

    async def delete_refresh_tokens_for_user(self, user_id: str) -> int:
        """Revoke every refresh token a user holds. Returns the number removed."""
        return await run_in_threadpool(self._delete_user_refresh_tokens, user_id)

    async def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        return await run_in_threadpool(self._ping)

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Blocking implementations (run in the thread pool)
    # ------------------------------------------------------------------

    def _ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
        except SQLAlchemyError:
            logger.exception("Database health check failed")
            return False
        return True

    def _fetch_user(self, clause) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(clause)).fetchone()
        return _row_to_user(row) if row is not None else None

    def _email_exists(self, email: str) -> bool:
        with self.engine.connect() as conn:
            count = conn.execute(select(func.count()).select_from(_users).where(_users.c.email == email)).scalar()
        return (count or 0) > 0

    def _insert_user(self, user: User) -> User:
        now = _now_iso()
        try:
            with self.engine.begin() as conn:
                taken = conn.execute(select(_users.c.id).where(_users.c.email == user.email)).first()
                if taken is not None:
                    raise DuplicateEmail(user.email)
                conn.execute(
                    _users.insert().values(
                        id=user.id,
                        name=user.name,
                        email=user.email,
                        password=user.password,
                        date_of_birth=user.date_of_birth,
                        verify=int(user.verify),
                        email_verify_token=user.email_verify_token,
                        forgot_password_token=user.forgot_password_token,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except IntegrityError as exc:
            # Lost the race against a concurrent registration for the same email.
            raise DuplicateEmail(user.email) from exc
        return dataclasses.replace(user, created_at=now, updated_at=now)

    def _update_user(self, user_id: str, fields: dict) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(**fields, updated_at=_now_iso())
            )
        return result.rowcount > 0

    def _replace_password(self, user_id: str, forgot_password_token: str, password: str) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id, _users.c.forgot_password_token == forgot_password_token)
                .values(password=password, forgot_password_token=None, updated_at=_now_iso())
            )
        return result.rowcount > 0

    def _fetch_refresh_token(self, token: str) -> RefreshToken | None:
        with self.engine.connect() as conn:
            row = conn.execute(_refresh_tokens.select().where(_refresh_tokens.c.token == token)).fetchone()
        return _row_to_refresh_token(row) if row is not None else None

    def _insert_refresh_token(self, token: str, user_id: str) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(_refresh_tokens.insert().values(token=token, user_id=user_id, created_at=_now_iso()))
        return result.inserted_primary_key[0]

    def _delete_refresh_token(self, token: str) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.token == token))
        return result.rowcount > 0

    def _rotate_refresh_token(self, old_token: str, new_token: str, user_id: str) -> bool:
        with self.engine.begin() as conn:
            deleted = conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.token == old_token))
            if deleted.rowcount == 0:
                return False
            conn.execute(_refresh_tokens.insert().values(token=new_token, user_id=user_id, created_at=_now_iso()))
        return True

    def _delete_user_refresh_tokens(self, user_id: str) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.user_id == user_id))
        return result.rowcount


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        password=row.password,
        date_of_birth=row.date_of_birth,
        verify=UserVerifyStatus(row.verify),
        email_verify_token=row.email_verify_token,
        forgot_password_token=row.forgot_password_token,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_refresh_token(row) -> RefreshToken:
    return RefreshToken(
        id=row.id,
        token=row.token,
        user_id=row.user_id,
        created_at=row.created_at,
    )
