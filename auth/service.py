"""
CredentialService — sign-up, login and token validation.

Orchestrates the account store, session store, password hasher and
token codec.  Failures are raised as ``auth.errors`` types; mapping them
to responses is left to the caller (see ``auth.routes``).
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Awaitable, Optional, TypeVar

from auth.errors import (
    AccountAlreadyExists,
    AccountNotFound,
    CredentialError,
    InvalidToken,
    StoreUnavailable,
    WrongPassword,
)
from auth.models import SESSION_TTL, AccountRecord, SessionRecord, TokenClaims
from auth.password import PasswordHasher
from auth.stores import AccountStore, SessionStore
from auth.tokens import Clock, TokenCodec, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CredentialService:
    """
    Credential lifecycle over pluggable stores.

    With ``check_sessions`` on, a token is only valid while a matching,
    unexpired session record exists; with it off, validity depends on
    signature and ``exp`` alone.
    """

    def __init__(
        self,
        accounts: AccountStore,
        sessions: SessionStore,
        hasher: PasswordHasher,
        codec: TokenCodec,
        *,
        check_sessions: bool = True,
        clock: Optional[Clock] = None,
    ):
        self._accounts = accounts
        self._sessions = sessions
        self._hasher = hasher
        self._codec = codec
        self.check_sessions = check_sessions
        self._clock = clock or utcnow

    # ── Sign-up / login ─────────────────────────────────────────────────

    async def sign_up(self, email: str, password: str) -> AccountRecord:
        """
        Register ``email``.  Raises ``AccountAlreadyExists`` if taken,
        whether found up front or reported by the store on insert.
        """
        existing = await self._store_call("account lookup", self._accounts.find_by_email(email))
        if existing is not None:
            logger.info("Sign-up rejected: %s already registered", email)
            raise AccountAlreadyExists(email)

        password_hash = await asyncio.to_thread(self._hasher.hash, password)
        account = await self._store_call(
            "account save",
            self._accounts.save(AccountRecord(email=email, password_hash=password_hash)),
        )
        logger.info("Registered account %s (%s)", account.email, account.account_id)
        return account

    async def login(self, email: str, password: str) -> str:
        """
        Check ``email``/``password`` and return a freshly issued token.

        A session record is persisted before the token is returned; if
        that write fails the login fails with ``StoreUnavailable``.
        """
        account = await self._store_call("account lookup", self._accounts.find_by_email(email))
        if account is None:
            logger.info("Login rejected: no account for %s", email)
            raise AccountNotFound(email)

        matches = await asyncio.to_thread(self._hasher.verify, password, account.password_hash)
        if not matches:
            logger.info("Login rejected: wrong password for %s", email)
            raise WrongPassword()

        issued_at = self._clock().replace(microsecond=0)
        expires_at = issued_at + SESSION_TTL
        claims = {
            "userId": str(account.account_id),
            "roles": [],
            "email": account.email,
            "jti": uuid.uuid4().hex,
        }
        token = self._codec.encode(claims, expires_at, issued_at=issued_at)

        await self._store_call(
            "session save",
            self._sessions.save(
                SessionRecord(
                    token=token,
                    account_id=account.account_id,
                    issued_at=issued_at,
                    expires_at=expires_at,
                )
            ),
        )
        logger.info("Login: %s (%s), session expires %s", account.email, account.account_id, expires_at)
        return token

    # ── Validation ──────────────────────────────────────────────────────

    async def authenticate(self, token: str) -> TokenClaims:
        """
        Run the validation pipeline and return the verified claims.

        Stage 1 checks signature and expiry.  Stage 2, when enabled,
        requires the session issued with this token to exist and be
        unexpired.  Raises ``InvalidToken`` (or ``StoreUnavailable``).
        """
        claims = self._codec.decode(token)
        if not self.check_sessions:
            return claims

        session = await self._store_call("session lookup", self._sessions.find_by_token(token))
        if session is None:
            raise InvalidToken("session")
        if self._clock() >= session.expires_at:
            raise InvalidToken("expired")
        return claims

    async def validate(self, token: str) -> bool:
        """True only if the token passes every validation stage.  Never raises."""
        try:
            await self.authenticate(token)
        except InvalidToken as exc:
            logger.debug("Token rejected: %s", exc.reason)
            return False
        except CredentialError as exc:
            logger.warning("Token validation failed: %s", exc.message)
            return False
        except Exception:
            logger.exception("Unexpected error while validating token")
            return False
        return True

    # ── Helpers ─────────────────────────────────────────────────────────

    async def _store_call(self, operation: str, call: Awaitable[T]) -> T:
        """Await a store call, wrapping unexpected failures in ``StoreUnavailable``."""
        try:
            return await call
        except CredentialError:
            raise
        except Exception as exc:
            logger.exception("Store failure during %s", operation)
            raise StoreUnavailable(operation) from exc
