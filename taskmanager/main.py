"""Main FastAPI application for the Task Manager API."""
import logging
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from taskmanager.config import Settings, get_settings
from taskmanager.db.config import create_db_engine
from taskmanager.db.init import init_db
from taskmanager.middleware.cors import add_cors_middleware
from taskmanager.routers import auth_router, notifications_router, tasks_router, ws_router
from taskmanager.services.container import Services, build_services
from taskmanager.utils.logger import configure_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    services: Optional[Services] = None,
) -> FastAPI:
    """Build the application; tests pass their own settings, engine and services."""
    configure_logging()
    settings = settings or get_settings()
    engine = engine or create_db_engine(settings.database_url)

    app = FastAPI(
        title="Task Manager API",
        description="REST API for task management with email and realtime reminders",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.services = services or build_services(settings, engine)

    # Add CORS middleware
    add_cors_middleware(app, settings)

    @app.on_event("startup")
    async def startup_event():
        """Initialize database and start the background schedulers."""
        init_db(app.state.engine)
        if settings.schedulers_enabled:
            app.state.services.start_schedulers()
        else:
            logger.info("Background schedulers disabled")
        logger.info("Application startup complete.")

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.services.stop_schedulers()
        logger.info("Application shutdown complete.")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": "1.0.0"}

    @app.get("/")
    async def root():
        """Root endpoint - API welcome message."""
        return {
            "message": "Welcome to the Task Manager API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
        }

    app.include_router(auth_router, prefix="/auth")  # /auth/register, /auth/login, /auth/profile
    app.include_router(tasks_router, prefix="/api")  # /api/tasks
    app.include_router(notifications_router, prefix="/api")  # /api/notifications
    app.include_router(ws_router)  # /ws
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "taskmanager.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
