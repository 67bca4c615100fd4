"""
PostgreSQL (Supabase) connections

This module centralizes every way of reaching the database:
- SQLAlchemy (schema declarations and table creation)
- psycopg2 directly (raw SQL used by the repositories)
- Supabase client (Auth admin API only: bans, roles, user listing)

Author: ReadyMix
Date: 2025-06-02
"""
import time
import logging
from typing import Optional

import psycopg2
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from supabase import create_client, Client

from .config import settings

logger = logging.getLogger(__name__)

# Seconds before psycopg2 gives up opening a connection
CONNECTION_TIMEOUT = 10


# ============================================================================
# SQLAlchemy Configuration (schema of record)
# ============================================================================

def sqlalchemy_url(database_url: str) -> str:
    """Pin the psycopg2 driver on plain postgres:// and postgresql:// URLs"""
    for prefix in ("postgresql://", "postgres://"):
        if database_url.startswith(prefix):
            return "postgresql+psycopg2://" + database_url[len(prefix):]
    return database_url


# The engine does not connect until first use
engine = create_engine(
    sqlalchemy_url(settings.DATABASE_URL),
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    FastAPI dependency that yields a SQLAlchemy session

    Usage:
        @router.get("/items")
        def read_items(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ============================================================================
# psycopg2 Direct Connections (for raw SQL queries)
# ============================================================================

def get_db_connection():
    """
    Get a direct psycopg2 connection (rows as tuples)

    Raises:
        Exception if DATABASE_URL is not configured
    """
    database_url = settings.DATABASE_URL
    if not database_url:
        raise Exception("DATABASE_URL not configured")

    return psycopg2.connect(database_url, connect_timeout=CONNECTION_TIMEOUT)


def get_db_connection_dict():
    """
    Get a psycopg2 connection with RealDictCursor (rows as dicts)

    Example:
        conn = get_db_connection_dict()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM orders")
        results = cursor.fetchall()  # list of dicts
        cursor.close()
        conn.close()
    """
    database_url = settings.DATABASE_URL
    if not database_url:
        raise Exception("DATABASE_URL not configured")

    return psycopg2.connect(
        database_url,
        cursor_factory=RealDictCursor,
        connect_timeout=CONNECTION_TIMEOUT
    )


def _connect_with_retry(cursor_factory=None, max_retries: int = 3, retry_delay: float = 1.0):
    database_url = settings.DATABASE_URL
    if not database_url:
        raise Exception("DATABASE_URL not configured")

    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            conn = psycopg2.connect(
                database_url,
                cursor_factory=cursor_factory,
                connect_timeout=CONNECTION_TIMEOUT
            )

            # Test connection with a simple query
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.close()

            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            error_msg = str(e)

            if "SSL connection has been closed unexpectedly" in error_msg:
                logger.warning(f"SSL connection error on attempt {attempt}/{max_retries}: {error_msg}")
            else:
                logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {error_msg}")

            if attempt < max_retries:
                # Exponential backoff
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)
            else:
                logger.error(f"All {max_retries} connection attempts failed")
                raise

    raise last_error if last_error else Exception("Connection failed after all retries")


def get_db_connection_with_retry(max_retries=3, retry_delay=1.0):
    """
    Get a psycopg2 connection, retrying SSL/connection failures with exponential backoff

    Used by the health check and the analytics endpoints, which run several
    heavier queries and are the first to notice pooler hiccups.
    """
    return _connect_with_retry(None, max_retries, retry_delay)


def get_db_connection_dict_with_retry(max_retries=3, retry_delay=1.0):
    """Same as get_db_connection_with_retry but rows come back as dicts"""
    return _connect_with_retry(RealDictCursor, max_retries, retry_delay)


# ============================================================================
# Supabase Client (Auth admin API)
# ============================================================================

_supabase: Optional[Client] = None


def get_supabase() -> Client:
    """
    FastAPI dependency / accessor for the service-role Supabase client

    The client is built on first use so that the API can start without
    Supabase credentials (the auth admin endpoints then answer 500).
    """
    global _supabase
    if _supabase is None:
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise ValueError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not configured")
        _supabase = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    return _supabase
