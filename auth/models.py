"""
Domain records exchanged between the credential service and its stores.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Lifetime of a login: session expiry and token ``exp`` both use it.
SESSION_TTL = timedelta(days=30)


class AccountRecord(BaseModel):
    """An identity.  ``account_id`` is ``None`` until the store assigns it."""

    account_id: Optional[uuid.UUID] = None
    email: str
    password_hash: str
    created_at: Optional[datetime] = None


class SessionRecord(BaseModel):
    """Timestamps are always timezone-aware UTC; naive values are taken as UTC."""

    token: str
    account_id: uuid.UUID
    issued_at: datetime
    expires_at: datetime

    @field_validator("issued_at", "expires_at")
    @classmethod
    def normalize_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class TokenClaims(BaseModel):
    """
    Payload carried inside a signed token.

    Field aliases are the wire names (``userId``); ``iat`` and ``exp``
    are integer Unix seconds.  ``jti`` keeps two tokens issued to the
    same account within one second distinct.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    roles: List[str] = Field(default_factory=list)
    email: str
    jti: str
    iat: int
    exp: int

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)
