"""
ART Job Board - FastAPI Application Entry Point

This is the main entry point for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from jobboard import __version__
from jobboard.config import settings
from jobboard.database import async_session_maker, close_db, init_db
from jobboard.routers import auth, clients, loyalty, pricing, projects
from jobboard.services.auth_service import AuthService
from jobboard.services.email_service import EmailService
from jobboard.utils.error_handling import setup_exception_handlers

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def seed_admin():
    """Create the configured initial admin if it does not exist yet."""
    async with async_session_maker() as session:
        admin = await AuthService(session).get_or_create_admin()
        if admin:
            logger.info(f"Admin ready: {admin.email}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info(f"Starting {settings.app_name}...")
    logger.info(f"Environment: {settings.app_env}")

    # Initialize database (dev only - use migrations in production)
    if settings.is_development:
        await init_db()
        logger.info("Database tables initialized")

    try:
        await seed_admin()
    except SQLAlchemyError as e:
        logger.warning(f"Admin seeding skipped: {e}")

    app.state.email_service = EmailService()
    logger.info(f"Email provider: {app.state.email_service.provider}")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    await close_db()
    logger.info("Database connections closed")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Roof estimating job board with loyalty tier pricing",
    version=__version__,
    docs_url="/api/docs" if settings.is_development else None,
    redoc_url="/api/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
    }


@app.get("/api/v1")
async def api_root():
    """API v1 root endpoint."""
    return {
        "message": f"Welcome to {settings.app_name} API v1",
        "endpoints": {
            "auth": "/api/v1/auth",
            "clients": "/api/v1/clients",
            "loyalty": "/api/v1/loyalty",
            "projects": "/api/v1/projects",
            "pricing": "/api/v1/pricing",
        }
    }


# ===========================================
# INCLUDE ROUTERS
# ===========================================

app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(clients.router, prefix="/api/v1/clients", tags=["Clients"])
app.include_router(loyalty.router, prefix="/api/v1/loyalty", tags=["Loyalty"])
app.include_router(projects.router, prefix="/api/v1/projects", tags=["Projects"])
app.include_router(pricing.router, prefix="/api/v1/pricing", tags=["Pricing"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
    )
