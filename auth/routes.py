"""
Auth API routes — sign up, login, validate.

Route prefix: /auth
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from auth.dependencies import get_credential_service, get_current_claims
from auth.errors import AccountAlreadyExists, AccountNotFound, PasswordTooLong, WrongPassword
from auth.models import TokenClaims
from auth.service import CredentialService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

AUTH_TOKEN_HEADER = "AUTH_TOKEN"


# ── Request / response schemas ─────────────────────────────────────────


class RequestStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class SignUpResponse(BaseModel):
    request_status: RequestStatus


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    request_status: RequestStatus
    token: Optional[str] = None


class ClaimsResponse(BaseModel):
    user_id: str
    email: str
    roles: List[str]
    issued_at: int
    expires_at: int


# ── Endpoints ──────────────────────────────────────────────────────────


@router.post("/sign_up", response_model=SignUpResponse)
async def sign_up(
    req: SignUpRequest,
    service: CredentialService = Depends(get_credential_service),
):
    """Register a new account."""
    try:
        await service.sign_up(req.email, req.password)
    except AccountAlreadyExists:
        logger.info("Sign-up conflict for %s", req.email)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"request_status": RequestStatus.FAILURE.value},
        )
    except PasswordTooLong as exc:
        logger.info("Sign-up rejected for %s: %s", req.email, exc.code)
        return JSONResponse(
            status_code=exc.status_code,
            content={"request_status": RequestStatus.FAILURE.value, "detail": exc.message},
        )
    return {"request_status": RequestStatus.SUCCESS}


@router.post("/login", response_model=LoginResponse)
async def login(
    req: LoginRequest,
    response: Response,
    service: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    """Login with email + password; the token is returned in the body and the AUTH_TOKEN header."""
    try:
        token = await service.login(req.email, req.password)
    except (AccountNotFound, WrongPassword) as exc:
        logger.info("Login failed for %s (%s)", req.email, exc.code)
        # Same answer for both so callers cannot tell which emails exist.
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    response.headers[AUTH_TOKEN_HEADER] = token
    return {"request_status": RequestStatus.SUCCESS, "token": token}


@router.get("/validate", response_model=bool)
async def validate(
    token: str = Query(...),
    service: CredentialService = Depends(get_credential_service),
) -> bool:
    return await service.validate(token)


@router.get("/me", response_model=ClaimsResponse)
async def me(claims: TokenClaims = Depends(get_current_claims)) -> Dict[str, Any]:
    """Claims of the presented bearer token."""
    return {
        "user_id": claims.user_id,
        "email": claims.email,
        "roles": claims.roles,
        "issued_at": claims.iat,
        "expires_at": claims.exp,
    }
