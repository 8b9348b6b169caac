"""Initialize database tables."""
import logging

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel

# Importing the models registers their tables on SQLModel.metadata
from taskmanager import models  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(engine: Engine) -> None:
    """Create all tables in the database."""
    logger.info("[DB INIT] Creating all tables...")
    SQLModel.metadata.create_all(engine)
    logger.info("[DB INIT] Tables created successfully.")
