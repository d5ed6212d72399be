"""Expose the resource management FastAPI app with local development CORS defaults."""

import logging
import os
import re
from contextlib import asynccontextmanager
from typing import Iterable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .database import engine, read_bool_env
from .errors import AppError, InternalError
from .migrations import run_database_migrations, verify_schema_ready
from .routers import finance_router, payments_router, procurements_router, sales_router

LOGGER = logging.getLogger(__name__)

RUN_MIGRATIONS_ENV = "RUN_MIGRATIONS_ON_STARTUP"
VERIFY_SCHEMA_ENV = "VERIFY_SCHEMA_ON_STARTUP"

ALLOWED_ORIGINS_ENV = "BACKEND_ALLOWED_ORIGINS"

# Vite dev and preview servers.
LOCAL_DEVELOPMENT_ORIGINS = {"http://localhost:5173", "http://localhost:5174"}
LOCALHOST_ORIGIN_REGEX = r"https?://(localhost|127\.0\.0\.1|0\.0\.0\.0)(:\d+)?$"
DEFAULT_ALLOWED_ORIGINS = LOCAL_DEVELOPMENT_ORIGINS | {
    f"http://{host}:{port}"
    for host in ("localhost", "127.0.0.1")
    for port in (4173, 5173, 5174)
}


def _split_raw_origins(raw_value: str) -> list[str]:
    """Origins may be separated by commas, whitespace or both."""

    return [part for part in re.split(r"[\s,]+", raw_value) if part]


def _clean_origins(origins: Iterable[str]) -> set[str]:
    return {origin.strip().rstrip("/") for origin in origins if origin.strip()}


def resolve_allowed_origins() -> list[str]:
    configured = _clean_origins(_split_raw_origins(os.getenv(ALLOWED_ORIGINS_ENV, "")))
    allowed = (configured or DEFAULT_ALLOWED_ORIGINS) | LOCAL_DEVELOPMENT_ORIGINS
    return sorted(allowed)


def ensure_database_is_ready() -> None:
    """Apply pending migrations and check the schema before serving requests."""

    if read_bool_env(RUN_MIGRATIONS_ENV, True):
        LOGGER.info("Ensuring database schema is up to date before serving requests")
        run_database_migrations()
    else:
        LOGGER.info("Database migrations disabled via %s", RUN_MIGRATIONS_ENV)

    if read_bool_env(VERIFY_SCHEMA_ENV, True):
        verify_schema_ready(engine)
    else:
        LOGGER.info("Schema readiness check disabled via %s", VERIFY_SCHEMA_ENV)


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_database_is_ready()
    yield


app = FastAPI(title="Resource Management Finance API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=resolve_allowed_origins(),
    allow_origin_regex=LOCALHOST_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Validation failed",
                "details": details,
            }
        },
    )


@app.exception_handler(SQLAlchemyError)
async def handle_storage_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    LOGGER.exception("Unhandled storage error on %s %s", request.method, request.url.path)
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


app.include_router(procurements_router, prefix="/procurements", tags=["procurements"])
app.include_router(payments_router, prefix="/payments", tags=["payments"])
app.include_router(sales_router, prefix="/sales", tags=["sales"])
app.include_router(finance_router, prefix="/finance", tags=["finance"])


@app.get("/", tags=["health"])
def read_root() -> dict[str, str]:
    """Return a simple health check response."""
    return {"status": "ok"}
