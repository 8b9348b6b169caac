"""CORS configuration for the browser frontend."""
import logging

from fastapi.middleware.cors import CORSMiddleware

from taskmanager.config import Settings

logger = logging.getLogger(__name__)


def add_cors_middleware(app, settings: Settings):
    """Add CORS middleware to the FastAPI application."""
    # In production, use allow_origin_regex for wildcard support (Vercel deployments)
    if settings.is_production:
        logger.info("Using production CORS with Vercel wildcard support")
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=r"https://.*\.vercel\.app",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        logger.info(f"Using development CORS with origins: {settings.allowed_origins}")
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
