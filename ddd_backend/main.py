"""
DDD Service Backend - Main FastAPI Application
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): Workflow, mail relay and lucrari export routers;
                      session-based admin guard
v1.0.0 (2026-09-28): Initial FastAPI application
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import os

from ddd_backend.config import settings, init_directories
from ddd_backend.api import auth, customers, employees, solutions, lucrari, mail, workflow

# Configure logging
os.makedirs(settings.LOGS_DIR, exist_ok=True)
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(f'{settings.LOGS_DIR}/api.log'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    # Create necessary directories
    init_directories()

    # Initialize database
    from ddd_backend.models import init_db
    await init_db(seed=settings.SEED_DEMO_DATA)

    logger.info(f"Mail recipient mode: {settings.MAIL_RECIPIENT_MODE}"
                f"{' (dry run)' if settings.MAIL_DRY_RUN else ''}")

    yield

    logger.info(f"{len(workflow.workflows)} unfinished workflow(s) discarded")
    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Pest-control service visits, proces verbal generation and records",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(auth.router, prefix="/api", tags=["Auth"])
app.include_router(customers.router, prefix="/api", tags=["Customers"])
app.include_router(employees.router, prefix="/api", tags=["Employees"])
app.include_router(solutions.router, prefix="/api", tags=["Solutions"])
app.include_router(lucrari.router, prefix="/api", tags=["Lucrari"])
app.include_router(workflow.router, prefix="/api", tags=["Workflows"])
app.include_router(mail.router, prefix="/api", tags=["Mail"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "app": settings.APP_NAME
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ddd_backend.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        workers=settings.API_WORKERS
    )
