from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from starlette.exceptions import HTTPException

from songshelf.api.api import router as api_router
from songshelf.config import get_host, get_port
from songshelf.models.database import Base, build_engine, build_session_factory
from songshelf.services.storage import ObjectStorage
from songshelf.settings import Settings

logger = logging.getLogger(__name__)

_QUIET_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger().setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def create_app(
    settings: Settings | None = None,
    *,
    storage: ObjectStorage | None = None,
    session_factory: sessionmaker | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.LOG_LEVEL)

    if session_factory is None:
        session_factory = build_session_factory(build_engine(settings.DATABASE_URL))
    if storage is None:
        storage = ObjectStorage.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            Base.metadata.create_all(bind=session_factory.kw["bind"])
        except OperationalError:
            logger.warning(
                "Database connection failed during startup. "
                "Start the database or check .env settings."
            )
        logger.info("Server running on - %s", settings.BASE_URL)
        yield

    app = FastAPI(title="SongShelf Upload API", lifespan=lifespan)
    app.state.settings = settings
    app.state.storage = storage
    app.state.session_factory = session_factory

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "PUT", "POST", "DELETE"],
        allow_headers=["Content-Type"],
    )
    app.include_router(api_router, tags=["files"])

    @app.exception_handler(HTTPException)
    async def render_http_error(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def render_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        locations = [tuple(error.get("loc", ())) for error in exc.errors()]
        if any(loc[:2] == ("body", "files") for loc in locations):
            return JSONResponse(status_code=400, content={"error": "No files uploaded"})
        if any(loc[:2] == ("path", "file_id") for loc in locations):
            return JSONResponse(status_code=404, content={"error": "File not found"})
        return JSONResponse(status_code=422, content={"error": "Invalid request"})

    return app


def run() -> None:
    uvicorn.run("songshelf.main:create_app", factory=True, host=get_host(), port=get_port())


if __name__ == "__main__":
    run()
