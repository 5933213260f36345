"""
AccountStore / SessionStore — the narrow persistence interfaces the
credential service depends on, plus in-memory implementations.

Durable implementations backed by SQLAlchemy live in
``database.stores``.
"""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional

from auth.errors import AccountAlreadyExists
from auth.models import AccountRecord, SessionRecord


class AccountStore(ABC):
    """Durable email → account mapping."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[AccountRecord]:
        """Return the account registered under exactly ``email``, if any."""
        ...

    @abstractmethod
    async def save(self, account: AccountRecord) -> AccountRecord:
        """
        Insert a new account and return it with ``account_id`` assigned.

        Must raise ``AccountAlreadyExists`` if the email is already taken,
        atomically with the insert.
        """
        ...


class SessionStore(ABC):
    """Durable token → session mapping."""

    @abstractmethod
    async def save(self, session: SessionRecord) -> SessionRecord:
        ...

    @abstractmethod
    async def find_by_token(self, token: str) -> Optional[SessionRecord]:
        ...


class InMemoryAccountStore(AccountStore):
    def __init__(self) -> None:
        self._by_email: Dict[str, AccountRecord] = {}
        self._lock = asyncio.Lock()

    async def find_by_email(self, email: str) -> Optional[AccountRecord]:
        return self._by_email.get(email)

    async def save(self, account: AccountRecord) -> AccountRecord:
        async with self._lock:
            if account.email in self._by_email:
                raise AccountAlreadyExists(account.email)
            stored = account.model_copy(
                update={
                    "account_id": account.account_id or uuid.uuid4(),
                    "created_at": account.created_at or datetime.now(timezone.utc),
                }
            )
            self._by_email[stored.email] = stored
            return stored

    def __len__(self) -> int:
        return len(self._by_email)


class InMemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._by_token: Dict[str, SessionRecord] = {}

    async def save(self, session: SessionRecord) -> SessionRecord:
        self._by_token[session.token] = session
        return session

    async def find_by_token(self, token: str) -> Optional[SessionRecord]:
        return self._by_token.get(token)

    def __len__(self) -> int:
        return len(self._by_token)
