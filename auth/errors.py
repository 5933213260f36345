"""
Typed failures raised by the credential core.

Each error carries a stable ``code`` and the HTTP status the boundary
layer should answer with; the service itself never builds responses.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CredentialError(Exception):
    """Base for every failure the credential service surfaces."""

    code = "CREDENTIAL_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class AccountAlreadyExists(CredentialError):
    code = "ACCOUNT_ALREADY_EXISTS"
    status_code = 409

    def __init__(self, email: str):
        super().__init__(f"Account with email {email} already exists")
        self.email = email


class AccountNotFound(CredentialError):
    code = "ACCOUNT_NOT_FOUND"
    status_code = 404

    def __init__(self, email: str):
        super().__init__(f"Account with email {email} not found")
        self.email = email


class WrongPassword(CredentialError):
    code = "WRONG_PASSWORD"
    status_code = 401

    def __init__(self) -> None:
        super().__init__("Wrong password")


class PasswordTooLong(CredentialError):
    code = "PASSWORD_TOO_LONG"
    status_code = 422

    def __init__(self, limit: int):
        super().__init__(f"Password must be at most {limit} bytes")
        self.limit = limit


class InvalidToken(CredentialError):
    """
    Token rejected.  ``reason`` is one of ``malformed``, ``signature``,
    ``claims``, ``expired`` or ``session``.
    """

    code = "INVALID_TOKEN"
    status_code = 401

    def __init__(self, reason: str, message: str = "Invalid or expired token"):
        super().__init__(message, {"reason": reason})
        self.reason = reason


class StoreUnavailable(CredentialError):
    code = "STORE_UNAVAILABLE"
    status_code = 503

    def __init__(self, operation: str):
        super().__init__(f"Credential store unavailable during {operation}")
        self.operation = operation
