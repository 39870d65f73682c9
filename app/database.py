"""
Database configuration and session management using SQLAlchemy.

The database is the credential store: it maps device identifiers to
their shared secrets and holds notification bot configuration. The
relay only reads from it.
"""

import os

from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

# Load environment variables
load_dotenv()

# Database URL from environment
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./relay.db")


def make_engine(url: str = DATABASE_URL) -> Engine:
    """Create an engine for the credential store."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=os.getenv("DEBUG", "false").lower() == "true",
        )
    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=20,
        echo=os.getenv("DEBUG", "false").lower() == "true",
    )


engine = make_engine()

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


def init_db(bind: Engine = engine) -> None:
    """
    Initialize the database by creating all tables.

    For production, prefer using migrations (Alembic).
    """
    Base.metadata.create_all(bind=bind)


def ping(bind: Engine = engine) -> None:
    """Run a trivial query; raises if the database is unreachable."""
    with bind.connect() as conn:
        conn.execute(text("SELECT 1"))
