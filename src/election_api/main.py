"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
and OpenAPI metadata.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from election_api import __version__
from election_api.core.config import get_settings
from election_api.core.database import dispose_engine, init_engine, open_session
from election_api.core.logging import setup_logging
from election_api.services.ballot_service import (
    AdmissionError,
    AdmissionTimeoutError,
    AlreadyVotedError,
    InvalidCandidateForPositionError,
    ScopeMismatchError,
)

_ADMISSION_STATUS: dict[type[AdmissionError], int] = {
    AlreadyVotedError: 409,
    InvalidCandidateForPositionError: 400,
    ScopeMismatchError: 403,
}


def admission_status(exc: AdmissionError) -> int:
    """HTTP status for an admission refusal."""
    for exc_type, status_code in _ADMISSION_STATUS.items():
        if isinstance(exc, exc_type):
            return status_code
    return 400


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle: init engine on startup, dispose on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    if settings.reconcile_on_startup:
        from election_api.core.cache import get_result_cache
        from election_api.services.result_service import reconcile_all

        logger.info("Reconciling derived results from the ballot ledger on startup")
        async with open_session() as session:
            await reconcile_all(session, get_result_cache())

    yield

    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Election API",
        description="Ballot ledger, live tallies, winner resolution and null/void auditing",
        version=__version__,
        lifespan=lifespan,
    )

    # Register exception handlers
    @app.exception_handler(AdmissionError)
    async def admission_error_handler(request: Request, exc: AdmissionError) -> JSONResponse:
        return JSONResponse(
            status_code=admission_status(exc),
            content={"detail": str(exc), "code": exc.code},
        )

    @app.exception_handler(AdmissionTimeoutError)
    async def admission_timeout_handler(request: Request, exc: AdmissionTimeoutError) -> JSONResponse:
        return JSONResponse(
            status_code=503,
            content={"detail": str(exc), "code": exc.code},
            headers={"Retry-After": "1"},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )

    # Register middleware and routers
    from election_api.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
