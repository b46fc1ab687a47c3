"""Cache database session management."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from studio_index.cache.models import CacheBase

CACHE_DB_NAME = ".studio-index-cache.db"

log = logging.getLogger(__name__)


def get_cache_engine(cache_dir: Path):
    """Create SQLAlchemy engine for the cache database.

    Args:
        cache_dir: Directory holding the cache database.

    Returns:
        SQLAlchemy engine for the cache database.
    """
    db_path = cache_dir / CACHE_DB_NAME
    return create_engine(f"sqlite:///{db_path}", connect_args={"timeout": 30})


def delete_cache(cache_dir: Path) -> bool:
    """Delete the cache database file if it exists.

    Returns True if a file was deleted, False otherwise.
    """
    db_path = cache_dir / CACHE_DB_NAME
    if db_path.exists():
        db_path.unlink()
        log.info("Deleted corrupt or stale cache: %s", db_path)
        return True
    return False


@contextmanager
def get_cache_session(cache_dir: Path) -> Generator[Session, None, None]:
    """Create a session for the cache database.

    Auto-creates tables on first use.  If the database file is corrupt
    (e.g. truncated write), it is deleted and recreated automatically.

    Args:
        cache_dir: Directory holding the cache database.

    Yields:
        SQLAlchemy Session for the cache database.
    """
    try:
        yield from _open_cache_session(cache_dir)
    except Exception as exc:
        msg = str(exc).lower()
        if "malformed" in msg or "corrupt" in msg or "not a database" in msg:
            log.warning("Cache database appears corrupt, rebuilding: %s", exc)
            delete_cache(cache_dir)
            yield from _open_cache_session(cache_dir)
        else:
            raise


def _open_cache_session(cache_dir: Path) -> Generator[Session, None, None]:
    """Internal helper that opens the cache session."""
    cache_dir.mkdir(parents=True, exist_ok=True)
    engine = get_cache_engine(cache_dir)
    CacheBase.metadata.create_all(engine)

    session = sessionmaker(bind=engine)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
        engine.dispose()
