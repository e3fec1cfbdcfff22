"""
User Service — FastAPI Application Factory
============================================

What:  Builds the application: tracing, persistence, middleware, error
       handlers and the /users routes.
How:   `create_app()` constructs (or accepts) the Settings, Database and
       Telemetry handles, keeps them on `app.state`, and wires everything
       to them. uvicorn runs it in factory mode (`run()`).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │ OTel server  │→│ Req ID   │→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌──────────────┐                  │
    │  │ GET /users   │ │ POST /users  │                  │
    │  └──────────────┘ └──────────────┘                  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ DatabaseError→500 │ Exception→500 (recover)  │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  connect to the database and create the users table.
              Any failure is fatal and the server does not start.
    Shutdown: dispose the engine, flush and stop the tracer provider.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from user_service import __version__
from user_service.config import Settings
from user_service.config import settings as default_settings
from user_service.database import Database
from user_service.exceptions import DatabaseError, StartupError, UserServiceError
from user_service.middleware.logging import RequestLoggingMiddleware
from user_service.middleware.request_id import (
    REQUEST_ID_HEADER,
    RequestIDMiddleware,
    request_id_var,
)
from user_service.routes import users
from user_service.services.user_service import UserService
from user_service.telemetry import Telemetry

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger for the whole process.

    Format: 2024-01-15T12:00:00 [INFO] user_service.access: GET /users 200 3.2ms [a1b2c3d4] trace=4bf92f35... from 127.0.0.1
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # The access middleware already logs each request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    # SQL statements are logged at INFO by SQLAlchemy; shown only in DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if level == "DEBUG" else logging.WARNING
    )
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup:
        1. Connect to the database and auto-migrate the users table
    Shutdown:
        1. Dispose the database engine
        2. Shut down the tracer provider (flushes batched spans)

    Raises:
        StartupError: the database is unreachable or the table could not be
        created. uvicorn aborts startup and the process exits.
    """
    database: Database = app.state.database
    telemetry: Telemetry = app.state.telemetry

    # ── Startup ───────────────────────────────────────────────────────────
    logger.info("User service %s starting up...", __version__)
    try:
        await database.connect()
    except Exception as e:
        logger.error("Failed to connect to database: %s", e)
        await database.dispose()
        telemetry.shutdown()
        raise StartupError(
            message="Failed to connect to database",
            context={"original_error": type(e).__name__},
        ) from e

    logger.info("Service ready")

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("User service shutting down...")
    await database.dispose()
    telemetry.shutdown()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Handler hierarchy:
        DatabaseError          → 500 (persistence failure during a request)
        UserServiceError       → 500 (catch-all for custom errors)
        Exception (fallback)   → 500 (crash recovery; the process keeps serving)

    Responses never include stack traces or SQL; details go to the log.
    """

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(UserServiceError)
    async def handle_service_error(request: Request, exc: UserServiceError):
        rid = request_id_var.get("")
        logger.error("[%s] Service error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Catch-all: a crash in a handler becomes a generic 500.

        Runs outside RequestIDMiddleware, so the header is set here.
        """
        rid = request_id_var.get("")
        logger.error(
            "[%s] Unexpected error: %s",
            rid,
            str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred.",
                "request_id": rid,
            },
            headers={REQUEST_ID_HEADER: rid} if rid else None,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    telemetry: Optional[Telemetry] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Handles that are not injected are built from `settings`; tests pass
    their own Database (SQLite) and Telemetry (in-memory exporter).

    Raises:
        StartupError: the trace exporter could not be initialized.
    """
    settings = settings or default_settings
    setup_logging(settings.log_level)

    telemetry = telemetry or Telemetry.from_settings(settings)
    database = database or Database.from_settings(settings)

    app = FastAPI(
        title="User Service",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.telemetry = telemetry
    app.state.database = database
    app.state.user_service = UserService(telemetry.tracer)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → route
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(users.router)

    # ── Tracing ───────────────────────────────────────────────────────────
    telemetry.instrument_app(app)
    telemetry.instrument_engine(database.engine)

    return app


def run() -> None:
    """Console entry point: serve the app on settings.backend_port (8080)."""
    uvicorn.run(
        "user_service.main:create_app",
        factory=True,
        host=default_settings.backend_host,
        port=default_settings.backend_port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
