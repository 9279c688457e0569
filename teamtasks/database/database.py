"""Engine, session factory and schema setup for teamtasks.

DATABASE_URL selects the backend: a SQLite file for development and tests, or
PostgreSQL when tasks are shared by a whole organisation.
"""

import os
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./teamtasks.db")


def _is_sqlite_url(database_url: str) -> bool:
    return "sqlite" in (database_url or "")


def get_engine_kwargs(database_url: str) -> dict:
    """Build create_engine keyword arguments for a database URL without connecting."""
    engine_kwargs: dict = {
        "echo": os.getenv("DEBUG", "False").lower() == "true",
        "pool_pre_ping": True,
    }

    if _is_sqlite_url(database_url):
        # Sync route handlers run in a threadpool.
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        return engine_kwargs

    engine_kwargs["pool_size"] = int(os.getenv("DB_POOL_SIZE", "5"))
    engine_kwargs["max_overflow"] = int(os.getenv("DB_MAX_OVERFLOW", "5"))
    engine_kwargs["pool_timeout"] = int(os.getenv("DB_POOL_TIMEOUT_SEC", "30"))
    return engine_kwargs


def build_engine(database_url: str) -> Engine:
    return create_engine(database_url, **get_engine_kwargs(database_url))


engine = build_engine(DATABASE_URL)


@event.listens_for(Engine, "connect")
def set_sqlite_pragmas(dbapi_conn, connection_record):
    """Turn on foreign keys (subtask and history cascades depend on them) and WAL for SQLite."""
    if _is_sqlite_url(DATABASE_URL) and dbapi_conn.__class__.__module__.startswith("sqlite3"):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Session:
    """Yield one session per request (FastAPI dependency)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create the task, subtask, history and notification tables.

    SQLite databases are created directly from the models. A PostgreSQL deployment
    with RUN_MIGRATIONS=true is brought to the Alembic head instead.
    """
    # Registers the tables on Base.metadata
    from teamtasks.database import models  # noqa: F401

    if os.getenv("RUN_MIGRATIONS", "False").lower() == "true" and not _is_sqlite_url(DATABASE_URL):
        from alembic import command
        from alembic.config import Config

        alembic_cfg = Config(os.getenv("ALEMBIC_INI", "alembic.ini"))
        alembic_cfg.set_main_option("sqlalchemy.url", DATABASE_URL)
        command.upgrade(alembic_cfg, "head")
        return

    Base.metadata.create_all(bind=engine)
