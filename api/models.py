"""
API response models for the account service REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are kept
separate from the dataclasses in auth/models.py, which own the internal domain
representation. Route handlers map between the two.

Request bodies are not modelled here: they go through the validation
pipelines in auth/dependencies.py so every rejection carries a field name and
a message constant from auth/messages.py.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from auth.models import TokenPair, User

# ---------------------------------------------------------------------------
# Token responses
# ---------------------------------------------------------------------------


class TokenPairResponse(BaseModel):
    """Body for login and refresh-token responses."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    token_type: str = "bearer"

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenPairResponse":
        return cls(access_token=pair.access_token, refresh_token=pair.refresh_token)


class RegisterResponse(TokenPairResponse):
    """Body for POST /users/register."""

    user_id: str


class MessageResponse(BaseModel):
    """Generic success acknowledgement. message is an auth.messages constant."""

    model_config = ConfigDict(frozen=True)

    message: str
    user_id: Optional[str] = None


class MeResponse(BaseModel):
    """Profile of the authenticated user. Never includes the password hash or tokens."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    date_of_birth: str
    verify: str
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "MeResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            date_of_birth=user.date_of_birth,
            verify=user.verify.name,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload.

    message is a constant from auth.messages; field names the request field
    that failed validation, when there is one.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    field: Optional[str] = None
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
