"""FastAPI application for the activity history service."""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.dependencies import get_api_key
from app.routes import history
from app.routes.health import get_db_info
from config import Settings, get_settings
from db.connection import init_schema
from migrations.migrate import migrate
from activity.services._types import DbInfoDict

logger: logging.Logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = get_settings()
    logger.info("DB: %s", settings.database.db_info_for_logging())
    logger.info("History grouping time zone: %s", settings.history.timezone)

    # Postgres deployments get the schema from the ORM; SQLite runs the SQL migrations
    # so the append-only triggers exist.
    if settings.database._use_postgres():
        init_schema()
    else:
        applied: list[str] = migrate()
        if applied:
            logger.info("Applied migrations: %s", ", ".join(applied))
    yield


def create_app() -> FastAPI:
    app: FastAPI = FastAPI(title="Activity History", version="0.1.0", lifespan=_lifespan)

    # The history page is a read-mostly UI; writes come from backend services.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-API-Key"],
    )

    @app.exception_handler(Exception)
    async def _on_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": str(exc), "type": type(exc).__name__})

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/health/db", dependencies=[Depends(get_api_key)])
    def health_db() -> DbInfoDict:
        return get_db_info()

    app.include_router(history.router)
    return app


app: FastAPI = create_app()


def start() -> None:
    """Entry point for activity-history-api. .env is loaded by config on import."""
    uvicorn.run(
        "app.main:app",
        host=os.environ.get("ACTIVITY_HOST", "0.0.0.0"),
        port=int(os.environ.get("ACTIVITY_PORT", "8000")),
        reload=os.environ.get("ACTIVITY_RELOAD", "false").lower() in ("1", "true", "yes"),
    )
