from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from sqlalchemy import text
import logging

from sharehub.core.config import settings
from sharehub.core.database import AsyncSessionLocal, init_models
from sharehub.core.storage import storage
from sharehub.api.errors import register_exception_handlers
from sharehub.api.router import api_router
from sharehub.tasks.expiry import expiry_scheduler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})")
    await init_models()
    storage.ensure_directory_exists()
    expiry_scheduler.start()

    yield

    # Shutdown
    logger.info("Shutting down...")
    await expiry_scheduler.stop()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API router
app.include_router(api_router)


# Root endpoint
@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    database_status = "healthy"
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        database_status = "unhealthy"

    storage_status = "healthy" if storage.is_writable() else "unhealthy"

    return {
        "status": "healthy" if database_status == "healthy" and storage_status == "healthy" else "degraded",
        "services": {
            "database": database_status,
            "storage": storage_status
        }
    }
