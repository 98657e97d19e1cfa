"""FastAPI application for the Clinic Registry."""

import time
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import sessionmaker

from . import __version__
from .api import auth, clinics, dentists
from .api.middleware import ProblemDetailsMiddleware, register_exception_handlers
from .api.schemas import HealthResponse
from .config import ClinicRegistryConfig, get_config, validate_startup_security
from .db.database import create_database_engine, create_session_factory
from .services.context import ServiceContext
from .services.users import UserService
from .utils.logging_config import get_logger, initialize_logging

logger = get_logger('main')


def create_app(
    config: Optional[ClinicRegistryConfig] = None,
    session_factory: Optional[sessionmaker] = None,
    service_context: Optional[ServiceContext] = None,
) -> FastAPI:
    """Build the application.

    Tests pass their own session factory (or a whole service context) so
    the app runs against a throwaway database with a fixed clock.
    """
    config = config or get_config()
    initialize_logging(debug=config.server.debug)

    if service_context is None:
        if session_factory is None:
            session_factory = create_session_factory(create_database_engine())
        service_context = ServiceContext.from_config(config, session_factory)

    app = FastAPI(
        title=config.app.app_name,
        description=config.app.description,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.config = config
    app.state.service_context = service_context

    register_exception_handlers(app)
    app.add_middleware(ProblemDetailsMiddleware)

    allowed_origins = list(config.server.cors_origins)
    if config.server.debug:
        allowed_origins.extend([
            "http://127.0.0.1:3000",  # Development frontend
            "http://localhost:3000",
        ])
    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type", "Accept"],
            expose_headers=["X-Page-Limit", "X-Next-Cursor", "Link"],
        )

    app.include_router(auth.router)
    app.include_router(clinics.router)
    app.include_router(dentists.router)

    @app.on_event("startup")
    def bootstrap_user() -> None:
        """Create the configured bootstrap user if it does not exist yet."""
        email = config.auth.bootstrap_email
        password = config.auth.bootstrap_password
        if not email or not password:
            return
        if UserService(app.state.service_context).ensure_user(email, password):
            logger.info("Bootstrap user created")

    @app.get("/api/v1/health", response_model=HealthResponse, tags=["health"])
    def health_check() -> HealthResponse:
        """Liveness probe."""
        return HealthResponse(status="ok")

    @app.get("/api/v1/ready", tags=["health"])
    def readiness_check() -> JSONResponse:
        """Readiness check that validates database connectivity."""
        start_time = time.time()
        checks = {"database": False}
        errors = []

        try:
            with app.state.service_context.gateway.read() as repos:
                repos.session.execute(text("SELECT 1"))
            checks["database"] = True
        except Exception as e:
            errors.append(f"Database check failed: {e}")

        response = {
            "status": "ready" if all(checks.values()) else "not_ready",
            "version": __version__,
            "checks": checks,
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }
        if errors:
            response["errors"] = errors
        return JSONResponse(content=response, status_code=200 if not errors else 503)

    return app


def main() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    validate_startup_security()
    config = get_config()
    uvicorn.run(
        "clinic_registry.main:create_app",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        log_level="debug" if config.server.debug else "info",
    )


if __name__ == "__main__":
    main()
