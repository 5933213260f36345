"""
FastAPI dependencies for authentication.

Provides ``get_credential_service`` and ``get_current_claims``, used by
the auth routes and by any route that needs a verified bearer token.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from auth.errors import InvalidToken
from auth.models import TokenClaims
from auth.service import CredentialService

_bearer_scheme = HTTPBearer(auto_error=False)


def get_credential_service(request: Request) -> CredentialService:
    """The service instance wired onto ``app.state`` at startup."""
    return request.app.state.credential_service


async def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    service: CredentialService = Depends(get_credential_service),
) -> TokenClaims:
    """
    Verify the Bearer token and return its claims.

    Any failure is a 401; the reason is not disclosed to the client.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return await service.authenticate(credentials.credentials)
    except InvalidToken:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
