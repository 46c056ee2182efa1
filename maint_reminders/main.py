"""
Maintenance Reminder API - Main Application

Exposes vehicle registration, service recording (which recomputes the
reminder schedule) and a manual trigger for the due-reminder scan. The
scan also runs on a cron schedule while the app is up.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from maint_reminders import __version__
from maint_reminders.api.v2.router import api_router
from maint_reminders.config import settings
from maint_reminders.database import init_db
from maint_reminders.exceptions import ReminderException, create_exception_handlers
from maint_reminders.middleware import CorrelationIdMiddleware, CorrelationLogFilter
from maint_reminders.tasks.reminder_scheduler import start_reminder_scheduler, stop_reminder_scheduler
# Import all models to register them with SQLAlchemy metadata before init_db()
from maint_reminders.models import Client, Vehicle, Service  # noqa: F401

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s",
)
for handler in logging.getLogger().handlers:
    handler.addFilter(CorrelationLogFilter())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Maintenance Reminder API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        # SECURITY: Don't log full exception details which may contain credentials
        logger.error(f"Database initialization failed: {type(e).__name__}")
        logger.warning("App starting without database - some features may not work")

    if settings.SCHEDULER_ENABLED:
        try:
            start_reminder_scheduler()
        except Exception:
            logger.exception("Failed to start reminder scheduler")

    yield

    stop_reminder_scheduler()
    logger.info("Shutting down Maintenance Reminder API...")


docs_url = "/docs" if settings.DOCS_ENABLED else None
redoc_url = "/redoc" if settings.DOCS_ENABLED else None

app = FastAPI(
    title="Maintenance Reminder API",
    description="Vehicle service tracking and maintenance reminders",
    version=__version__,
    docs_url=docs_url,
    redoc_url=redoc_url,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

handlers = create_exception_handlers(debug=settings.DEBUG)
app.add_exception_handler(ReminderException, handlers["reminder"])
app.add_exception_handler(StarletteHTTPException, handlers["http"])
app.add_exception_handler(RequestValidationError, handlers["validation"])
app.add_exception_handler(Exception, handlers["generic"])

app.include_router(api_router, prefix="/api/v2")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
    }


# For running with uvicorn directly (development only)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "maint_reminders.main:app",
        host="0.0.0.0",
        port=5001,
        reload=settings.DEBUG,
    )
