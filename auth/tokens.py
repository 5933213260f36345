"""
Signed token creation and verification.

Tokens are standard JWTs (HS256 by default) built with PyJWT, so any
conformant JWT library holding the key can verify them.  Keys are passed
in at construction: one active signing key plus any previous keys that
are still accepted for verification while a rotation is in progress.

If no secret is configured, ``from_settings`` falls back to a random key
that lives only as long as the process (with a startup warning); every
token issued before a restart is then unverifiable.
"""

from __future__ import annotations

import binascii
import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional, Sequence

import jwt
from jwt.utils import base64url_decode, base64url_encode
from pydantic import ValidationError

from auth.errors import InvalidToken
from auth.models import TokenClaims

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_signing_key() -> str:
    """Random 512-bit key, URL-safe text."""
    return secrets.token_urlsafe(64)


class TokenCodec:
    """Encode claims into a signed token and decode/verify them back."""

    def __init__(
        self,
        signing_key: str,
        previous_keys: Sequence[str] = (),
        algorithm: str = "HS256",
        clock: Optional[Clock] = None,
    ):
        if not signing_key:
            raise ValueError("signing_key must be a non-empty secret")
        self.algorithm = algorithm
        self._signing_key = signing_key
        self._verification_keys: List[str] = [signing_key] + [
            k for k in previous_keys if k and k != signing_key
        ]
        self._clock = clock or utcnow

    @classmethod
    def from_settings(cls, settings, clock: Optional[Clock] = None) -> "TokenCodec":
        key = settings.jwt_secret
        if not key:
            logger.warning(
                "JWT_SECRET not set — using an ephemeral signing key. Tokens will not "
                "survive a restart and cannot be verified by other processes."
            )
            key = generate_signing_key()
        return cls(
            key,
            previous_keys=settings.jwt_previous_secrets,
            algorithm=settings.jwt_algorithm,
            clock=clock,
        )

    def encode(
        self,
        claims: Mapping[str, Any],
        expires_at: datetime,
        issued_at: Optional[datetime] = None,
    ) -> str:
        """
        Sign ``claims`` (``userId``, ``roles``, ``email``) with ``iat`` and
        ``exp`` added as whole Unix seconds.
        """
        issued_at = issued_at or self._clock()
        payload = dict(claims)
        payload["iat"] = int(issued_at.timestamp())
        payload["exp"] = int(expires_at.timestamp())
        return jwt.encode(payload, self._signing_key, algorithm=self.algorithm)

    def decode(self, token: str) -> TokenClaims:
        """
        Verify ``token`` and return its claims.

        The signature is checked against every accepted key before any
        claim is read; expiry is checked last against the codec's clock.
        Raises ``InvalidToken`` on any failure.
        """
        if not isinstance(token, str):
            raise InvalidToken("malformed")
        segments = token.split(".")
        if len(segments) != 3:
            raise InvalidToken("malformed")

        # base64 decoding ignores trailing pad bits; refuse any signature
        # segment that does not round-trip so no character can be altered.
        try:
            signature = base64url_decode(segments[2])
        except (binascii.Error, ValueError, UnicodeEncodeError) as exc:
            raise InvalidToken("malformed") from exc
        if base64url_encode(signature).decode() != segments[2]:
            raise InvalidToken("malformed")

        payload = None
        for key in self._verification_keys:
            try:
                payload = jwt.decode(
                    token,
                    key,
                    algorithms=[self.algorithm],
                    options={
                        "verify_exp": False,
                        "verify_iat": False,
                        "require": ["exp", "iat"],
                    },
                )
                break
            except jwt.InvalidSignatureError:
                continue
            except jwt.MissingRequiredClaimError as exc:
                raise InvalidToken("claims") from exc
            except jwt.InvalidTokenError as exc:
                raise InvalidToken("malformed") from exc

        if payload is None:
            raise InvalidToken("signature")

        try:
            claims = TokenClaims.model_validate(payload)
        except ValidationError as exc:
            raise InvalidToken("claims") from exc

        if self._clock().timestamp() >= claims.exp:
            raise InvalidToken("expired")
        return claims
