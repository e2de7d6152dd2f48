from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from points_engine.config import settings
from points_engine.extensions import db
from points_engine.routers.points.routes import router as points_router
from points_engine.routers.triggers.routes import router as triggers_router
from points_engine.scheduler import create_scheduler
from points_engine.services.handlers import PayloadError

log = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    db.create_all()
    scheduler = None
    if settings.STREAK_SWEEP_ENABLED:
        scheduler = create_scheduler()
        scheduler.start()
    log.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)

    @app.exception_handler(PayloadError)
    async def payload_error_handler(request: Request, exc: PayloadError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        log.error("ledger store failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": "ledger store failure"})

    @app.get("/health", name="health")
    def health():
        return {"status": "ok", "app": settings.APP_NAME, "version": settings.APP_VERSION}

    app.include_router(triggers_router)
    app.include_router(points_router)
    return app


app = create_app()
