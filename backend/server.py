from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
import logging
import time
from pathlib import Path
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import traceback

# Load environment variables first
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

from config import Settings, get_settings, get_cors_config, validate_environment
from logging_config import setup_logging, get_logger, set_request_context, clear_request_context
from sentry_integration import init_sentry, capture_exception, set_tag
from database import Database
from email_integration import EmailClient
from migrations import initialize_database
from routers import templates_router, email_router, webhooks_router, analytics_router

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    email_client: Optional[EmailClient] = None,
    run_startup: bool = True,
) -> FastAPI:
    """
    Build the API application.

    The database and email client are created at startup unless passed in;
    either way they live on ``app.state`` for the dependencies to use.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler"""
        setup_logging(
            level=settings.LOG_LEVEL,
            json_format=settings.is_production,
            service_name="campaign-mail"
        )
        if settings.SENTRY_DSN:
            init_sentry(
                dsn=settings.SENTRY_DSN,
                environment=settings.ENVIRONMENT,
                release=settings.API_VERSION,
            )
            set_tag("email_provider", settings.EMAIL_PROVIDER)

        logger.info("=" * 60)
        logger.info("Starting Campaign Mail API...")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info("=" * 60)

        env_status = validate_environment(settings)
        if not env_status["valid"]:
            for error in env_status["errors"]:
                logger.error(f"Configuration Error: {error}")
            if settings.is_production:
                raise RuntimeError("Cannot start in production with invalid configuration")
        for warning in env_status.get("warnings", []):
            logger.warning(f"Configuration Warning: {warning}")

        if app.state.database is None:
            app.state.database = Database(settings.get_database_url(), pool_size=settings.DB_POOL_SIZE)
        if app.state.email_client is None:
            app.state.email_client = EmailClient.from_settings(settings)

        if run_startup:
            try:
                await initialize_database(app.state.database, settings)
            except Exception as e:
                logger.error(f"Failed to start server: {e}")
                await app.state.database.dispose()
                raise

        logger.info("Campaign Mail API started successfully")

        yield

        logger.info("Shutting down gracefully...")
        await app.state.database.dispose()

    app = FastAPI(
        title=settings.API_TITLE,
        description="""
        Email campaign backend: templates, tracked sends and engagement analytics.

        ### Templates (/templates)
        - CRUD for subject/body templates

        ### Sending (/send-email, /sent-emails)
        - Send a template through the configured provider
        - Send log

        ### Webhooks (/webhooks)
        - Provider open and click events

        ### Analytics (/analytics, /stats, /activities)
        - Per-template engagement, dashboard summary, activity feed
        """,
        version=settings.API_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug_enabled else None,
        redoc_url="/redoc" if settings.debug_enabled else None,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.email_client = email_client

    # ==================== HEALTH CHECK ENDPOINTS ====================

    @app.get("/test-db", tags=["Health"])
    async def test_db(request: Request):
        """Database connectivity probe."""
        logger.info("Testing database connection...")
        try:
            timestamp = await request.app.state.database.ping()
        except Exception as e:
            logger.error(f"Database test error: {e}")
            return JSONResponse(status_code=500, content={"error": str(e)})
        return {"success": True, "timestamp": timestamp}

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """
        Detailed health check for load balancers and uptime monitors.

        Returns:
        - 200: Database reachable
        - 503: Database unavailable
        """
        health_status = {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": settings.API_VERSION,
            "environment": settings.ENVIRONMENT,
            "checks": {}
        }

        try:
            await request.app.state.database.ping()
            health_status["checks"]["database"] = {"status": "connected"}
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            health_status["status"] = "unhealthy"
            health_status["checks"]["database"] = {"status": "disconnected", "error": str(e)}

        client_status = request.app.state.email_client.get_status()
        health_status["checks"]["email"] = {
            "provider": client_status["provider"],
            "status": "configured" if client_status["configured"] else "not_configured",
        }

        if health_status["status"] == "unhealthy":
            return JSONResponse(status_code=503, content=health_status)
        return health_status

    app.include_router(templates_router)
    app.include_router(email_router)
    app.include_router(webhooks_router)
    app.include_router(analytics_router)

    # ==================== MIDDLEWARE ====================

    app.add_middleware(CORSMiddleware, **get_cors_config(settings))

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing information"""
        start_time = time.time()
        request_id = request.headers.get("X-Request-ID", f"req-{int(start_time * 1000)}")
        token = set_request_context(request_id)

        try:
            response = await call_next(request)

            process_time = time.time() - start_time
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))

            logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({process_time:.3f}s)")
            return response
        except Exception as e:
            logger.error(f"Request failed: {str(e)}")
            raise
        finally:
            clear_request_context(token)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions"""
        logger.error(f"Unhandled exception: {exc}")
        if settings.debug_enabled:
            logger.error(traceback.format_exc())
        capture_exception(exc, path=request.url.path)

        if settings.is_production:
            return JSONResponse(status_code=500, content={"error": "Internal server error"})
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "details": str(exc),
                "type": type(exc).__name__,
            }
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server:app", host="0.0.0.0", port=get_settings().PORT)
