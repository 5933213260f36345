"""
Tests for CredentialService — sign-up, login and the validation pipeline.
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from auth.errors import (
    AccountAlreadyExists,
    AccountNotFound,
    InvalidToken,
    StoreUnavailable,
    WrongPassword,
)
from auth.models import SESSION_TTL, SessionRecord
from auth.service import CredentialService
from auth.stores import InMemoryAccountStore, InMemorySessionStore


class _RacingAccountStore(InMemoryAccountStore):
    """Lookup always misses, so uniqueness is only enforced on insert."""

    async def find_by_email(self, email):
        return None


class TestSignUp:
    @pytest.mark.asyncio
    async def test_creates_account_with_hashed_password(self, service, accounts, hasher):
        account = await service.sign_up("a@x.com", "pw")
        assert account.account_id is not None
        stored = await accounts.find_by_email("a@x.com")
        assert stored.account_id == account.account_id
        assert stored.password_hash != "pw"
        assert hasher.verify("pw", stored.password_hash)

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, service, accounts):
        await service.sign_up("a@x.com", "pw")
        with pytest.raises(AccountAlreadyExists):
            await service.sign_up("a@x.com", "other")
        assert len(accounts) == 1

    @pytest.mark.asyncio
    async def test_email_is_case_sensitive(self, service, accounts):
        await service.sign_up("a@x.com", "pw")
        await service.sign_up("A@x.com", "pw")
        assert len(accounts) == 2

    @pytest.mark.asyncio
    async def test_store_conflict_on_insert_surfaces_as_already_exists(
        self, sessions, hasher, codec, clock
    ):
        accounts = _RacingAccountStore()
        service = CredentialService(accounts, sessions, hasher, codec, clock=clock)
        await service.sign_up("a@x.com", "pw")
        with pytest.raises(AccountAlreadyExists):
            await service.sign_up("a@x.com", "pw")

    @pytest.mark.asyncio
    async def test_concurrent_sign_ups_create_one_account(self, service, accounts):
        results = await asyncio.gather(
            *(service.sign_up("race@x.com", f"pw{i}") for i in range(5)),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(accounts) == 1
        assert len(failures) == 4
        assert all(isinstance(f, AccountAlreadyExists) for f in failures)

    @pytest.mark.asyncio
    async def test_store_failure_wrapped(self, sessions, hasher, codec):
        accounts = InMemoryAccountStore()
        accounts.find_by_email = AsyncMock(side_effect=ConnectionError("db down"))
        service = CredentialService(accounts, sessions, hasher, codec)
        with pytest.raises(StoreUnavailable) as excinfo:
            await service.sign_up("a@x.com", "pw")
        assert isinstance(excinfo.value.__cause__, ConnectionError)


class TestLogin:
    @pytest.mark.asyncio
    async def test_happy_path(self, service, sessions, clock):
        await service.sign_up("a@x.com", "pw")
        token = await service.login("a@x.com", "pw")
        assert await service.validate(token) is True

        session = await sessions.find_by_token(token)
        assert session is not None
        assert session.expires_at == session.issued_at + SESSION_TTL
        assert session.issued_at == clock().replace(microsecond=0)

    @pytest.mark.asyncio
    async def test_token_carries_account_claims(self, service, codec):
        account = await service.sign_up("a@x.com", "pw")
        claims = codec.decode(await service.login("a@x.com", "pw"))
        assert claims.user_id == str(account.account_id)
        assert claims.email == "a@x.com"
        assert claims.roles == []
        assert claims.exp - claims.iat == int(SESSION_TTL.total_seconds())

    @pytest.mark.asyncio
    async def test_wrong_password(self, service, sessions):
        await service.sign_up("a@x.com", "pw")
        with pytest.raises(WrongPassword):
            await service.login("a@x.com", "wrong")
        assert len(sessions) == 0

    @pytest.mark.asyncio
    async def test_longer_password_sharing_72_byte_prefix_rejected(self, service, sessions):
        await service.sign_up("a@x.com", "x" * 72)
        with pytest.raises(WrongPassword):
            await service.login("a@x.com", "x" * 72 + "attacker-suffix")
        assert len(sessions) == 0

    @pytest.mark.asyncio
    async def test_unknown_account(self, service, sessions):
        with pytest.raises(AccountNotFound):
            await service.login("nouser@x.com", "pw")
        assert len(sessions) == 0

    @pytest.mark.asyncio
    async def test_each_login_creates_a_distinct_session(self, service, sessions):
        await service.sign_up("a@x.com", "pw")
        first = await service.login("a@x.com", "pw")
        second = await service.login("a@x.com", "pw")
        assert first != second
        assert len(sessions) == 2

    @pytest.mark.asyncio
    async def test_session_save_failure_aborts_login(self, accounts, hasher, codec, clock):
        sessions = InMemorySessionStore()
        sessions.save = AsyncMock(side_effect=RuntimeError("disk full"))
        service = CredentialService(accounts, sessions, hasher, codec, clock=clock)
        await service.sign_up("a@x.com", "pw")
        with pytest.raises(StoreUnavailable) as excinfo:
            await service.login("a@x.com", "pw")
        assert excinfo.value.operation == "session save"


class TestValidate:
    async def _token(self, service) -> str:
        await service.sign_up("a@x.com", "pw")
        return await service.login("a@x.com", "pw")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "elapsed",
        [timedelta(0), timedelta(days=29), SESSION_TTL - timedelta(seconds=1)],
    )
    async def test_valid_within_window(self, service, clock, elapsed):
        token = await self._token(service)
        clock.advance(seconds=elapsed.total_seconds())
        assert await service.validate(token) is True

    @pytest.mark.asyncio
    async def test_invalid_after_window(self, service, clock):
        token = await self._token(service)
        clock.advance(days=30, seconds=1)
        assert await service.validate(token) is False

    @pytest.mark.asyncio
    async def test_tampered_token(self, service):
        token = await self._token(service)
        for i in range(0, len(token), 7):
            replacement = "A" if token[i] != "A" else "B"
            tampered = token[:i] + replacement + token[i + 1:]
            assert await service.validate(tampered) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("garbage", ["not-a-token", "", "a.b.c", None, 12345])
    async def test_garbage_never_raises(self, service, garbage):
        assert await service.validate(garbage) is False

    @pytest.mark.asyncio
    async def test_missing_session_rejected(self, service, accounts, hasher, codec, clock):
        token = await self._token(service)
        detached = CredentialService(
            accounts, InMemorySessionStore(), hasher, codec, clock=clock
        )
        assert await detached.validate(token) is False
        with pytest.raises(InvalidToken) as excinfo:
            await detached.authenticate(token)
        assert excinfo.value.reason == "session"

    @pytest.mark.asyncio
    async def test_stateless_mode_ignores_session_store(self, service, accounts, hasher, codec, clock):
        token = await self._token(service)
        stateless = CredentialService(
            accounts, InMemorySessionStore(), hasher, codec,
            check_sessions=False, clock=clock,
        )
        assert await stateless.validate(token) is True

    @pytest.mark.asyncio
    async def test_session_lookup_failure_returns_false(self, service, sessions):
        token = await self._token(service)
        sessions.find_by_token = AsyncMock(side_effect=ConnectionError("db down"))
        assert await service.validate(token) is False

    @pytest.mark.asyncio
    async def test_session_with_naive_timestamps_still_checked(self, service, sessions, clock):
        token = await self._token(service)
        stored = await sessions.find_by_token(token)
        sessions.find_by_token = AsyncMock(
            return_value=SessionRecord(
                token=token,
                account_id=stored.account_id,
                issued_at=stored.issued_at.replace(tzinfo=None),
                expires_at=stored.expires_at.replace(tzinfo=None),
            )
        )
        assert await service.validate(token) is True
        clock.advance(days=30)
        assert await service.validate(token) is False

    @pytest.mark.asyncio
    async def test_authenticate_returns_claims(self, service):
        token = await self._token(service)
        claims = await service.authenticate(token)
        assert claims.email == "a@x.com"
