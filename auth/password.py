"""
Password hashing and verification.

Uses bcrypt for password hashing with automatic
salting and configurable work factor.
"""

from __future__ import annotations

import bcrypt

from auth.errors import PasswordTooLong

# bcrypt only consumes the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """One-way bcrypt hashing; a fresh salt is generated on every ``hash``."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password with bcrypt (auto-salted)."""
        raw = password.encode()
        if len(raw) > MAX_PASSWORD_BYTES:
            raise PasswordTooLong(MAX_PASSWORD_BYTES)
        return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=self.rounds)).decode()

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Constant-time comparison against a bcrypt hash.

        Candidates over the 72-byte limit never match: older bcrypt
        releases truncate them, which would accept any extension of a
        72-byte password.
        """
        try:
            raw = password.encode()
            if len(raw) > MAX_PASSWORD_BYTES:
                return False
            return bcrypt.checkpw(raw, password_hash.encode())
        except (ValueError, TypeError, AttributeError):
            return False
