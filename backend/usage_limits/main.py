"""FastAPI application factory and process lifecycle."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI

from usage_limits.api.agents import router as agents_router
from usage_limits.api.interactions import router as interactions_router
from usage_limits.api.limits import router as limits_router
from usage_limits.api.organizations import router as organizations_router
from usage_limits.core.logging import configure_logging, get_logger
from usage_limits.db.session import Database, init_db, open_database

logger = get_logger(__name__)


def create_app(database: Database | None = None) -> FastAPI:
    """Build the API app; the database handle opens and closes with the lifespan."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        db = database or open_database()
        app.state.database = db
        await init_db(db)
        logger.info("app.startup")
        try:
            yield
        finally:
            await db.dispose()
            logger.info("app.shutdown")

    app = FastAPI(title="Usage Limits API", lifespan=lifespan)

    @app.get("/healthz")
    async def healthz() -> dict[str, bool]:
        return {"ok": True}

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(limits_router)
    api_v1.include_router(interactions_router)
    api_v1.include_router(agents_router)
    api_v1.include_router(organizations_router)
    app.include_router(api_v1)
    return app


app = create_app()
