"""
TutorChat persistence setup.

One engine per process. Students, chats and school-data snapshots live in
PostgreSQL in production; the test suite points DATABASE_URL at in-memory
SQLite.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from sqlalchemy.pool import StaticPool
from typing import Generator

from app.config import settings

if settings.database_url.startswith("sqlite"):
    # In-memory SQLite only exists on its connection, so every session shares one
    engine = create_engine(
        settings.database_url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
else:
    # Heartbeats are short, frequent transactions; keep a warm pool
    engine = create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        echo=settings.debug,
    )

# Usage workflows commit explicitly once the ledger is written back
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Session for one request or task; closed (and rolled back if uncommitted) afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
