"""Database engine construction and session dependency."""
from typing import Generator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create the SQLModel engine for ``database_url``."""
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo, pool_pre_ping=True)

    connect_args = {"check_same_thread": False}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # A single shared connection keeps the in-memory database alive
        engine = create_engine(database_url, echo=echo, connect_args=connect_args, poolclass=StaticPool)
    else:
        engine = create_engine(database_url, echo=echo, connect_args=connect_args)

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if database_url not in ("sqlite://", "sqlite:///:memory:"):
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


def get_session(request: Request) -> Generator[Session, None, None]:
    """Dependency for getting database sessions bound to the application's engine."""
    with Session(request.app.state.engine, expire_on_commit=False) as session:
        yield session
