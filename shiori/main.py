"""
Main FastAPI application entry point.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import text

from shiori.api import router as api_router
from shiori.core.config import Settings, get_settings
from shiori.core.database import create_db_engine, create_session_factory, init_db
from shiori.core.logging import get_logger, setup_logging
from shiori.core.middleware import RequestLoggingMiddleware
from shiori.services.catalog_client import BookmeterClient, OpenLibraryClient
from shiori.services.import_service import ImportJobRegistry

settings = get_settings()

setup_logging()
logger = get_logger(__name__)


def init_sentry(settings: Settings) -> bool:
    """Initialize Sentry if configured. Returns True when error tracking is on."""
    if not settings.SENTRY_DSN:
        return False

    try:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
    except ImportError:
        logger.warning("sentry-sdk not installed, error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=0.1 if settings.ENVIRONMENT == "production" else 1.0,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
    )
    logger.info("Sentry initialized successfully")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: owns the database engine and catalog clients."""
    logger.info(
        f"Starting {settings.APP_NAME}",
        extra={
            "extra_fields": {
                "environment": settings.ENVIRONMENT,
                "debug": settings.DEBUG,
            }
        },
    )

    engine = create_db_engine(settings.DATABASE_URL)
    init_db(engine)
    logger.info("Database tables verified/created")

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.bookmeter = BookmeterClient(settings)
    app.state.open_library = OpenLibraryClient(settings)
    app.state.import_jobs = ImportJobRegistry()

    # Initialize Sentry if configured
    init_sentry(settings)

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")
    await app.state.bookmeter.close()
    await app.state.open_library.close()
    engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Personal library tracker with catalog search and Bookmeter import",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
async def health_check():
    """Basic application health status."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/health/ready")
async def readiness_check():
    """Verify the database is reachable."""
    try:
        with app.state.session_factory() as db:
            db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "disconnected"

    return {
        "status": "ready" if db_status == "connected" else "not_ready",
        "checks": {"database": db_status},
    }


app.include_router(api_router, prefix=settings.API_V1_PREFIX)
