"""
Shared fixtures: a controllable clock and a fully in-memory service.
"""

from datetime import datetime, timedelta, timezone

import pytest

from auth.password import PasswordHasher
from auth.service import CredentialService
from auth.stores import InMemoryAccountStore, InMemorySessionStore
from auth.tokens import TokenCodec

SIGNING_KEY = "test-signing-key-" + "k" * 48
OLD_KEY = "test-previous-key-" + "p" * 48


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def hasher():
    # Minimum bcrypt cost keeps the suite fast.
    return PasswordHasher(rounds=4)


@pytest.fixture
def codec(clock, signing_key):
    return TokenCodec(signing_key, clock=clock)


@pytest.fixture
def accounts():
    return InMemoryAccountStore()


@pytest.fixture
def sessions():
    return InMemorySessionStore()


@pytest.fixture
def service(accounts, sessions, hasher, codec, clock):
    return CredentialService(accounts, sessions, hasher, codec, clock=clock)


@pytest.fixture
def signing_key():
    return SIGNING_KEY


@pytest.fixture
def old_key():
    return OLD_KEY
