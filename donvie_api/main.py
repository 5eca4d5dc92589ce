"""DonVie API - FastAPI Application Entry Point."""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from donvie_api import __version__
from donvie_api.auth.identity import attach_principal
from donvie_api.config.env import (
    get_cors_origins,
    get_log_level,
    json_logs_enabled,
    should_seed_demo_data,
)
from donvie_api.context import request_id_var, user_id_var
from donvie_api.errors import DonvieError
from donvie_api.routers import associations, auth, donations, health, users
from donvie_api.schemas import ProblemDetail
from donvie_api.utils import configure_json_logging

logger = logging.getLogger(__name__)

PROBLEM_BASE = "https://api.donvie.fr/problems"


def _get_title_for_status(status_code: int) -> str:
    """Get human-readable title for HTTP status code."""
    titles = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
        409: "Conflict",
        500: "Internal Server Error",
        503: "Service Unavailable",
    }
    return titles.get(status_code, f"HTTP {status_code}")


def _trace_instance() -> str:
    """Opaque occurrence id; never a path or database key."""
    request_id = request_id_var.get()
    return f"urn:donvie:trace:{request_id}" if request_id else f"urn:donvie:trace:{uuid.uuid4()}"


def _problem_response(
    status_code: int,
    problem_type: str,
    title: str,
    detail: Any,
    errors: Optional[list[dict[str, str]]] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    problem = ProblemDetail(
        type=problem_type,
        title=title,
        status=status_code,
        detail=detail,
        instance=_trace_instance(),
        errors=errors,
    )
    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=headers,
    )


# ============================================================================
# RFC 9457 Exception Handlers
# ============================================================================


async def donvie_error_handler(request: Request, exc: DonvieError) -> JSONResponse:
    """Domain errors -> problem+json with the error's own status and title."""
    headers = {"WWW-Authenticate": 'Bearer, Cookie realm="donvie"'} if exc.status_code == 401 else None
    return _problem_response(
        status_code=exc.status_code,
        problem_type=exc.error_type,
        title=exc.title,
        detail=exc.detail,
        errors=getattr(exc, "errors", None) or None,
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework HTTP errors (404 route, 405 method, ...) -> problem+json."""
    detail_value = exc.detail if exc.detail is not None else _get_title_for_status(exc.status_code)
    return _problem_response(
        status_code=exc.status_code,
        problem_type=f"{PROBLEM_BASE}/http-{exc.status_code}",
        title=_get_title_for_status(exc.status_code),
        detail=detail_value,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request validation errors -> 400 with a field-level errors list."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        # Drop the "body"/"query"/"path" prefix FastAPI adds
        if len(loc) > 1 and loc[0] in {"body", "query", "path", "header", "cookie"}:
            loc = loc[1:]
        errors.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})

    first = errors[0] if errors else {"field": "body", "message": "Validation error"}
    return _problem_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        problem_type=f"{PROBLEM_BASE}/validation-error",
        title="Bad Request",
        detail=f"Invalid field '{first['field']}': {first['message']}",
        errors=errors,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Uncaught exceptions -> generic 500; the traceback goes to the log only."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return _problem_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        problem_type=f"{PROBLEM_BASE}/internal-error",
        title="Internal Server Error",
        detail="An unexpected error occurred. Please try again later.",
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DonvieError, donvie_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)


# ============================================================================
# Middlewares
# ============================================================================


async def http_completion_logging_middleware(request: Request, call_next):
    """Log every HTTP request completion.

    Emits "http.request.completed" with method, path, status_code and
    duration_ms, including when the handler raised (status_code=500).
    """
    user_id_var.set("")
    start_time = time.perf_counter()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "http.request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        user_id_var.set("")


async def request_id_middleware(request: Request, call_next):
    """Accept or generate X-Request-ID and echo it on the response.

    Registered last so it is the outermost middleware and the context
    variable is set before inner middlewares run.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request_id_var.set(request_id)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# Application Factory
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Seed demo associations on startup (DONVIE_SEED, off in production)."""
    if should_seed_demo_data():
        from donvie_api.db.models import Base
        from donvie_api.db.seed import seed_associations
        from donvie_api.db.session import DATABASE_URL, SessionLocal, engine

        if DATABASE_URL.startswith("sqlite"):
            # Local convenience; PostgreSQL schemas are managed by Alembic
            Base.metadata.create_all(engine)
        with SessionLocal() as db:
            seed_associations(db)
    yield


def create_app() -> FastAPI:
    """Create the FastAPI application.

    Every route depends on attach_principal, so request.state.principal is
    set (possibly to None) before any handler runs.
    """
    if json_logs_enabled():
        configure_json_logging(log_level=get_log_level())

    new_app = FastAPI(
        title="DonVie API",
        description="Donation ledger for French associations: donations, tax receipts and dashboards.",
        version=__version__,
        docs_url="/api-docs",
        redoc_url="/redoc",
        dependencies=[Depends(attach_principal)],
        lifespan=lifespan,
    )

    new_app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),  # Never "*" with credentials
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID", "X-Receipt-Token"],
        expose_headers=["X-Request-ID"],
    )

    install_exception_handlers(new_app)

    new_app.include_router(health.router, tags=["health"])
    new_app.include_router(associations.router)
    new_app.include_router(donations.router)
    new_app.include_router(auth.router)
    new_app.include_router(users.router)

    @new_app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"service": "DonVie API", "version": __version__, "status": "running"}

    # Order matters: the last registered middleware is the outermost
    new_app.middleware("http")(http_completion_logging_middleware)
    new_app.middleware("http")(request_id_middleware)

    return new_app


app = create_app()
