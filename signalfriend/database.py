"""
Database and Redis connections for SignalFriend.

SQLite is used when no database is configured (tables are created on
startup); PostgreSQL is built from ``DB_*`` settings or taken from
``DATABASE_URL``. Redis is optional: without it nonces live in process.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

import redis
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from signalfriend.config import get_config
from signalfriend.errors import ApiError
from signalfriend.models import Base

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_URL = "sqlite:///signalfriend.db"

_engine: Optional[Engine] = None
_Session: Optional[scoped_session] = None
_redis_client: Optional[redis.Redis] = None


def get_database_url() -> str:
    cfg = get_config()
    if cfg.get("DATABASE_URL"):
        return cfg["DATABASE_URL"]
    if cfg.get("DB_HOST"):
        user = cfg.get("DB_USER", "signalfriend")
        password = cfg.get("DB_PASSWORD") or ""
        name = cfg.get("DB_NAME", "signalfriend")
        return f"postgresql+psycopg://{user}:{password}@{cfg['DB_HOST']}:{cfg.get('DB_PORT', 5432)}/{name}"
    return DEFAULT_SQLITE_URL


def _safe_url(db_url: str) -> str:
    """Drop credentials before logging a URL."""
    return db_url.split("@", 1)[1] if "@" in db_url else db_url


def _engine_options(db_url: str, echo: bool) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    if not db_url.startswith("sqlite"):
        options.update(pool_size=10, max_overflow=20, pool_recycle=3600)
        # Naive DateTime columns hold UTC; pin the session timezone so Postgres does not shift them
        options["connect_args"] = {"connect_timeout": 10, "options": "-c timezone=utc"}
        return options

    options["connect_args"] = {"check_same_thread": False}
    if ":memory:" in db_url or db_url in ("sqlite://", "sqlite:///"):
        # In-memory databases exist per connection, so share a single one
        options["poolclass"] = StaticPool
    return options


def init_database(echo: bool = False, create_tables: bool = False) -> None:
    """
    Create the engine and the thread-scoped session registry.

    Args:
        echo: Log every SQL statement
        create_tables: Run ``create_all``; always done for SQLite
    """
    global _engine, _Session

    if _engine is not None:
        logger.warning("Database already initialized")
        return

    db_url = get_database_url()
    sqlite = db_url.startswith("sqlite")
    _engine = create_engine(db_url, **_engine_options(db_url, echo))

    if sqlite:

        @event.listens_for(_engine, "connect")
        def enable_foreign_keys(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    _Session = scoped_session(sessionmaker(bind=_engine, expire_on_commit=False))

    if create_tables or sqlite:
        if not sqlite:
            logger.warning("Creating tables with create_all; prefer migrations in production")
        Base.metadata.create_all(_engine)

    logger.info(f"Database initialized: {_safe_url(db_url)}")


def get_engine() -> Optional[Engine]:
    return _engine


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Unit of work around a scoped session.

    Commits when the block exits cleanly. Any exception rolls back and is
    re-raised; ``ApiError`` is not logged because it is a client error, not a
    database failure. Do not nest: the inner scope shares and closes the
    outer session.
    """
    if _Session is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    session = _Session()
    try:
        yield session
        session.commit()
    except ApiError:
        session.rollback()
        raise
    except IntegrityError as e:
        # Constraint races are expected by callers that insert idempotently
        session.rollback()
        logger.debug(f"Transaction rolled back on integrity error: {e}")
        raise
    except Exception as e:
        session.rollback()
        logger.error(f"Database transaction failed: {e}")
        raise
    finally:
        session.close()


def close_database() -> None:
    global _engine, _Session

    if _Session is not None:
        _Session.remove()
        _Session = None
    if _engine is not None:
        _engine.dispose()
        _engine = None
    logger.info("Database connections closed")


def check_database_health() -> Dict[str, Any]:
    dialect = _engine.dialect.name if _engine is not None else "unknown"
    try:
        with session_scope() as session:
            session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "database": dialect, "connected": False, "error": str(e)}
    return {"status": "healthy", "database": dialect, "connected": True}


# ============================================================================
# Redis (nonces, rate-limit storage)
# ============================================================================


def _redis_from_config(cfg) -> redis.Redis:
    options = {"decode_responses": True, "socket_connect_timeout": 5, "socket_timeout": 5}
    if cfg.get("REDIS_URL"):
        return redis.Redis.from_url(cfg["REDIS_URL"], **options)
    return redis.Redis(
        host=cfg.get("REDIS_HOST", "localhost"),
        port=cfg.get("REDIS_PORT", 6379),
        password=cfg.get("REDIS_PASSWORD"),
        db=cfg.get("REDIS_DB", 0),
        health_check_interval=30,
        **options,
    )


def init_redis() -> None:
    """Connect to Redis when enabled; on failure keep running without it."""
    global _redis_client

    if _redis_client is not None:
        return

    cfg = get_config()
    if not cfg.get("REDIS_ENABLED"):
        logger.info("Redis disabled (REDIS_ENABLED=false); nonces are kept in process")
        return

    client = _redis_from_config(cfg)
    try:
        client.ping()
    except redis.RedisError as e:
        logger.error(f"Redis unavailable, nonces fall back to process memory: {e}")
        return
    _redis_client = client
    logger.info("Redis initialized")


def get_redis() -> Optional[redis.Redis]:
    return _redis_client


def close_redis() -> None:
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None
        logger.info("Redis connection closed")


def check_redis_health() -> Dict[str, Any]:
    if _redis_client is None:
        return {"status": "unavailable", "cache": "redis", "connected": False}
    try:
        info = _redis_client.info()
    except redis.RedisError as e:
        logger.error(f"Redis health check failed: {e}")
        return {"status": "unhealthy", "cache": "redis", "connected": False, "error": str(e)}
    return {
        "status": "healthy",
        "cache": "redis",
        "connected": True,
        "version": info.get("redis_version"),
        "used_memory_human": info.get("used_memory_human"),
    }


def init_all(echo: bool = False, create_tables: bool = False) -> None:
    init_database(echo=echo, create_tables=create_tables)
    init_redis()


def close_all() -> None:
    close_database()
    close_redis()


def get_health_status() -> Dict[str, Any]:
    return {"database": check_database_health(), "redis": check_redis_health()}
