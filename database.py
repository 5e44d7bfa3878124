# database.py
"""
SQLAlchemy database connection and session management.

This module provides:
- Database engine configuration (Azure SQL via pymssql in production, SQLite locally)
- Session factory for dependency injection
- Connection utilities

Usage:
     from database import get_session, engine

     # In FastAPI routes:
     @app.get("/items")
     def get_items(db: Session = Depends(get_session)):
          return db.query(Item).all()
     """
import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from config import DATABASE_URL, DB_QUERY_TIMEOUT, SQL_ECHO

logger = logging.getLogger(__name__)


def build_engine(url: str = DATABASE_URL):
     """
     Create an engine for the given URL.

     Every storage call carries DB_QUERY_TIMEOUT as its deadline: pymssql gets
     it as the query timeout, SQLite as the lock wait, and the pool uses it
     for connection checkout.
     """
     if url.startswith("sqlite"):
          kwargs = {"connect_args": {"check_same_thread": False, "timeout": DB_QUERY_TIMEOUT}}
          if url in ("sqlite://", "sqlite:///:memory:"):
               kwargs["poolclass"] = StaticPool
          return create_engine(url, echo=SQL_ECHO, **kwargs)

     return create_engine(
          url,
          poolclass=QueuePool,
          pool_size=5,
          max_overflow=10,
          pool_timeout=DB_QUERY_TIMEOUT,
          pool_recycle=1800,  # Recycle connections after 30 minutes
          pool_pre_ping=True,
          connect_args={"timeout": DB_QUERY_TIMEOUT, "login_timeout": DB_QUERY_TIMEOUT},
          echo=SQL_ECHO,
     )


engine = build_engine()

# Session factory
SessionLocal = sessionmaker(
     bind=engine,
     autocommit=False,
     autoflush=False,
     expire_on_commit=False,
)


def get_session() -> Generator[Session, None, None]:
     """
     FastAPI dependency that provides a database session.

     The session commits when the request handler returns and rolls back
     when it raises.

     Yields:
          Session: SQLAlchemy database session
     """
     session = SessionLocal()
     try:
          yield session
          session.commit()
     except Exception:
          session.rollback()
          raise
     finally:
          session.close()


@contextmanager
def get_session_context() -> Generator[Session, None, None]:
     """
     Context manager for database sessions (for use outside FastAPI routes).

     Usage:
          with get_session_context() as db:
               report = reconcile_all(db)
     """
     session = SessionLocal()
     try:
          yield session
          session.commit()
     except Exception:
          session.rollback()
          raise
     finally:
          session.close()


def init_db() -> None:
     """
     Create all tables defined in the models if they don't exist.
     For production, use Alembic migrations instead.
     """
     from models import Base
     Base.metadata.create_all(bind=engine)


def check_connection() -> bool:
     """
     Test database connectivity.

     Returns:
          bool: True if connection successful, False otherwise
     """
     try:
          with engine.connect() as conn:
               conn.execute(text("SELECT 1"))
          return True
     except SQLAlchemyError as e:
          logger.error("Database connection failed: %s", e)
          return False
