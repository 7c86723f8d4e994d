"""
tests/conftest.py -- Shared test fixtures for the account service.

This module provides:
  - settings: a Settings instance with fixed, distinct signing secrets
  - store / codec / auth_service: isolated per-test service graph backed by a
    SQLite file under tmp_path
  - api_client: TestClient over the real FastAPI app with a patched lifespan
  - anyio_backend: pins async tests (@pytest.mark.anyio) to asyncio

Design: a file-backed SQLite DB per test (not :memory:) because store calls
run in a thread pool. Plain :memory: DBs are per-connection and would show a
blank schema to each worker thread; a file in WAL mode also gives the
concurrent refresh-rotation tests real lock contention.

Environment variables must be set before any api/ import: api/main.py reads
Settings at import time to configure TrustedHostMiddleware.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from pathlib import Path

# CRITICAL: set before importing api.main so get_settings() succeeds and the
# TestClient host ("testserver") passes TrustedHostMiddleware.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.service import AuthService
from auth.store import CredentialStore
from auth.tokens import TokenCodec
from core.config import Settings


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        debug=False,
        jwt_secret_access_token="a" * 40,
        jwt_secret_refresh_token="r" * 40,
        jwt_secret_email_verify_token="e" * 40,
        jwt_secret_forgot_password_token="f" * 40,
    )


@pytest.fixture
def store(tmp_path: Path) -> Generator[CredentialStore, None, None]:
    s = CredentialStore(f"sqlite:///{tmp_path / 'accounts_test.db'}")
    yield s
    s.close()


@pytest.fixture
def codec(settings: Settings) -> TokenCodec:
    return TokenCodec(settings)


@pytest.fixture
def auth_service(store: CredentialStore, codec: TokenCodec) -> AuthService:
    return AuthService(store, codec)


def _patch_lifespan(auth_service: AuthService):
    """Return a lifespan that wires the test AuthService into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.auth_service = auth_service
        yield

    return test_lifespan


@pytest.fixture
def api_client(auth_service: AuthService) -> Generator[TestClient, None, None]:
    """TestClient over the real app, backed by this test's isolated store.

    Rate limiting is switched off so tests can log in as often as they need.
    """
    app.router.lifespan_context = _patch_lifespan(auth_service)
    was_enabled = limiter.enabled
    limiter.enabled = False
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
    limiter.enabled = was_enabled
