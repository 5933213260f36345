"""
SQLAlchemy-backed AccountStore and SessionStore.

Email uniqueness is enforced by the ``accounts.email`` UNIQUE constraint:
a concurrent duplicate insert fails in the database and surfaces as
``AccountAlreadyExists``.  Any other database error becomes
``StoreUnavailable``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from auth.errors import AccountAlreadyExists, StoreUnavailable
from auth.models import AccountRecord, SessionRecord
from auth.stores import AccountStore, SessionStore
from database.models import Account, AuthSession

logger = logging.getLogger(__name__)


def _account_record(row: Account) -> AccountRecord:
    return AccountRecord(
        account_id=row.account_id,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )


def _session_record(row: AuthSession) -> SessionRecord:
    return SessionRecord(
        token=row.token,
        account_id=row.account_id,
        issued_at=row.issued_at,
        expires_at=row.expires_at,
    )


class SqlAccountStore(AccountStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_by_email(self, email: str) -> Optional[AccountRecord]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Account).where(Account.email == email)
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("Account lookup failed")
            raise StoreUnavailable("account lookup") from exc
        return _account_record(row) if row is not None else None

    async def save(self, account: AccountRecord) -> AccountRecord:
        row = Account(
            account_id=account.account_id or uuid.uuid4(),
            email=account.email,
            password_hash=account.password_hash,
            created_at=account.created_at or datetime.now(timezone.utc),
        )
        stored = _account_record(row)
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
        except IntegrityError as exc:
            raise AccountAlreadyExists(account.email) from exc
        except SQLAlchemyError as exc:
            logger.exception("Account insert failed")
            raise StoreUnavailable("account save") from exc
        return stored


class SqlSessionStore(SessionStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def save(self, session: SessionRecord) -> SessionRecord:
        row = AuthSession(
            token=session.token,
            account_id=session.account_id,
            issued_at=session.issued_at,
            expires_at=session.expires_at,
        )
        try:
            async with self._session_factory() as db:
                db.add(row)
                await db.commit()
        except SQLAlchemyError as exc:
            logger.exception("Session insert failed for account %s", session.account_id)
            raise StoreUnavailable("session save") from exc
        return session

    async def find_by_token(self, token: str) -> Optional[SessionRecord]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(AuthSession).where(AuthSession.token == token)
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("Session lookup failed")
            raise StoreUnavailable("session lookup") from exc
        return _session_record(row) if row is not None else None
