"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from alembic.config import Config as AlembicConfig
from alembic.script import ScriptDirectory
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from iobic.config import get_settings
from iobic.database import close_engine, get_engine
from sqlalchemy import text

from api.middleware.csrf import CSRFMiddleware
from api.routers import (
    auth,
    cms_content,
    cms_leads,
    cms_media,
    cms_settings,
    cms_users,
    health,
    leads,
)
from api.services.auth_lockout import LoginLockout
from api.services.session_store import build_session_store

logger = logging.getLogger(__name__)


async def _assert_database_revision_current() -> None:
    settings = get_settings()
    if settings.skip_migration_check:
        return

    repo_root = Path(__file__).resolve().parents[3]
    alembic_ini = repo_root / "alembic.ini"
    if not alembic_ini.exists():
        logger.warning("alembic.ini not found; skipping migration revision check")
        return

    alembic_cfg = AlembicConfig(str(alembic_ini))
    alembic_cfg.set_main_option("script_location", str(repo_root / "alembic"))
    script = ScriptDirectory.from_config(alembic_cfg)
    expected_heads = set(script.get_heads())
    if not expected_heads:
        return

    engine = get_engine()
    try:
        async with engine.connect() as connection:
            result = await connection.execute(text("SELECT version_num FROM alembic_version"))
            current_revisions = {str(row[0]) for row in result.fetchall() if row and row[0]}
    except Exception as exc:
        raise RuntimeError(
            "Database migration revision check failed. "
            "Run `alembic upgrade head` before starting the API."
        ) from exc

    if current_revisions != expected_heads:
        raise RuntimeError(
            "Database schema revision mismatch: "
            f"db={sorted(current_revisions)} expected={sorted(expected_heads)}. "
            "Run `alembic upgrade head`."
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    try:
        await _assert_database_revision_current()
        Path(get_settings().upload_dir).mkdir(parents=True, exist_ok=True)
        yield
    finally:
        await app.state.session_store.aclose()
        await close_engine()


def _warn_insecure_defaults() -> None:
    settings = get_settings()
    if settings.admin_password == "admin123":
        logger.warning("ADMIN_PASSWORD uses insecure default value")
    if settings.session_backend.strip().lower() == "memory":
        logger.warning("SESSION_BACKEND=memory; sessions are lost on restart and not shared")


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request data", "errors": jsonable_encoder(exc.errors())},
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app() -> FastAPI:
    app = FastAPI(title="IOBIC API", version="0.1.0", lifespan=lifespan)
    settings = get_settings()
    _warn_insecure_defaults()
    app.state.session_store = build_session_store(settings)
    app.state.login_lockout = LoginLockout()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.site_url, settings.admin_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CSRFMiddleware)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(cms_content.router, prefix="/api/cms", tags=["cms"])
    app.include_router(cms_media.router, prefix="/api/cms", tags=["cms"])
    app.include_router(cms_settings.router, prefix="/api/cms", tags=["cms"])
    app.include_router(cms_users.router, prefix="/api/cms", tags=["cms"])
    app.include_router(cms_leads.router, prefix="/api/cms", tags=["cms"])
    app.include_router(leads.router, prefix="/api", tags=["leads"])
    app.include_router(health.router, tags=["health"])
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )
    return app


app = create_app()
