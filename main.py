"""
Credential service — application entry point.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI

from api.middleware import register_middleware
from auth.password import PasswordHasher
from auth.routes import router as auth_router
from auth.service import CredentialService
from auth.tokens import TokenCodec
from config.settings import Settings, config

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("sqlalchemy.engine", "asyncio"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def build_service(settings: Settings) -> CredentialService:
    """Wire the credential service onto the SQL-backed stores."""
    from database.session import async_session_factory
    from database.stores import SqlAccountStore, SqlSessionStore

    return CredentialService(
        accounts=SqlAccountStore(async_session_factory),
        sessions=SqlSessionStore(async_session_factory),
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        codec=TokenCodec.from_settings(settings),
        check_sessions=settings.validate_sessions,
    )


def create_app(service: Optional[CredentialService] = None) -> FastAPI:
    """
    Build the FastAPI app.  Passing ``service`` skips database wiring,
    which is how tests run against in-memory stores.
    """
    app = FastAPI(
        title="Credential Service",
        version="1.0.0",
        description="Account sign-up, login and bearer token validation.",
    )
    register_middleware(app)
    app.include_router(auth_router, prefix="/auth")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    if service is not None:
        app.state.credential_service = service
        return app

    app.state.credential_service = build_service(config)

    @app.on_event("startup")
    async def on_startup():
        from database.session import init_models

        await init_models()
        logger.info(
            "Application ready (session checks %s).",
            "on" if config.validate_sessions else "off",
        )

    return app


if __name__ == "__main__":
    uvicorn.run(
        create_app(),
        host=config.host,
        port=config.port,
        log_level="debug" if config.debug else "info",
    )
