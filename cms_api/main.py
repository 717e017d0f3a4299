from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cms_api.core.config import ALEMBIC_CONFIG, API_PREFIX, CORS_ORIGINS, ENV, IS_PROD
from cms_api.core.database import Database
from cms_api.core.errors import AppError
from cms_api.core.logging_setup import configure_logging
from cms_api.core.startup_checks import apply_migrations, ensure_migrations_applied, validate_runtime_environment
from cms_api.middleware.observability import ObservabilityMiddleware
import cms_api.models  # noqa: F401  registers every table on Base.metadata
from cms_api.routers.addresses import router as addresses_router
from cms_api.routers.auth import router as auth_router
from cms_api.routers.customers import router as customers_router
from cms_api.routers.internal_metrics import router as internal_metrics_router
from cms_api.routers.reference import router as reference_router

configure_logging()

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(ALEMBIC_CONFIG or str(REPO_ROOT / "alembic.ini"))


def _startup_tasks(database: Database) -> None:
    try:
        validate_runtime_environment(database_url=database.url)
        apply_migrations(alembic_config_path=ALEMBIC_CONFIG_PATH)
        ensure_migrations_applied(engine=database.engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise
    logger.info("%s ready env=%s database=%s", STARTUP_PREFIX, ENV, database.url)


def _error_body(message: str, errors: Optional[list[dict[str, str]]] = None) -> dict:
    body: dict = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def _field_path(loc: tuple) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in {"body", "query", "path", "header"}:
        parts = parts[1:]
    return ".".join(parts)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        logger.warning(
            "%s %s -> %s %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {"field": _field_path(tuple(error.get("loc", ()))), "message": str(error.get("msg", ""))}
            for error in exc.errors()
        ]
        return JSONResponse(status_code=400, content=_error_body("Validation failed", errors))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = "Route not found"
        else:
            message = str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content=_error_body(message), headers=exc.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        message = GENERIC_ERROR_MESSAGE if IS_PROD else str(exc) or GENERIC_ERROR_MESSAGE
        return JSONResponse(status_code=500, content=_error_body(message))


def create_app(database: Optional[Database] = None, *, run_startup_tasks: bool = True) -> FastAPI:
    database = database if database is not None else Database()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if run_startup_tasks:
            _startup_tasks(database)
        yield
        database.dispose()

    app = FastAPI(
        title="Customer Management API",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ObservabilityMiddleware)

    _register_exception_handlers(app)

    # Routers
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(customers_router, prefix=API_PREFIX)
    app.include_router(addresses_router, prefix=API_PREFIX)
    app.include_router(reference_router, prefix=API_PREFIX)
    app.include_router(internal_metrics_router, prefix=API_PREFIX)

    @app.get(f"{API_PREFIX}/health")
    def health():
        return {"status": "ok", "environment": ENV}

    return app


app = create_app()
