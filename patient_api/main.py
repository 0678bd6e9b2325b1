"""
Main FastAPI application entry point.
Configures the application, middleware, and includes routers.
"""
from dotenv import load_dotenv

# Load environment variables from .env file first
load_dotenv()

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .config import settings
from .database import engine
from .models import Base  # Import all models here for creating tables
from .exceptions import register_exception_handlers
from .core.logging_config import setup_logging
from .core.middleware import setup_middlewares
from .cron.jobs import cron_registry
from .auth.router import router as auth_router
from .orders.router import router as orders_router
from .clinics.router import router as clinics_router
from .refunds.router import router as refunds_router
from .webhooks.router import router as webhooks_router
from .admin.router import router as admin_router

API_VERSION = "1.0.0"

# Configure logging
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and start scheduled jobs; stop them on shutdown."""
    logger.info("🚀 Starting Patient API...")

    # Create database tables if they don't exist
    Base.metadata.create_all(bind=engine)

    if settings.cron_enabled:
        cron_registry.start()
    else:
        logger.info("⏰ Cron jobs disabled")

    yield

    cron_registry.stop_all()
    logger.info("👋 Patient API stopped")


# Create FastAPI application
app = FastAPI(
    title="Patient API",
    description="Backend for the telehealth brand platform: orders, refunds, payment webhooks and scheduled jobs",
    version=API_VERSION,
    lifespan=lifespan,
)

# Register exception handlers
register_exception_handlers(app)

# Setup custom middleware
setup_middlewares(app)

# Configure CORS middleware, outermost so error responses carry the headers too
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(orders_router)
app.include_router(clinics_router)
app.include_router(refunds_router)
app.include_router(webhooks_router)
app.include_router(admin_router)

# Root endpoint
@app.get("/")
def root():
    """
    Root endpoint for API health check.

    Returns:
        dict: Welcome message and API version
    """
    return {"message": "Welcome to Patient API", "version": API_VERSION}

# Health check endpoint
@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring.

    Returns:
        dict: Health status information
    """
    return {"status": "healthy", "database": "connected", "environment": settings.environment}
