from collections.abc import Generator
from contextlib import contextmanager

import structlog
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import Session

_logger = structlog.get_logger()

_engine: Engine | None = None
_engine_url: str | None = None


def configure_engine(database_url: str) -> Engine:
    global _engine, _engine_url  # noqa: PLW0603
    _engine = create_engine(database_url, pool_pre_ping=True)
    _engine_url = database_url
    _logger.info("db_engine_configured", url=database_url.split("@")[-1])
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Database engine not configured, call configure_engine() first")
    return _engine


def ensure_engine(database_url: str) -> Engine:
    """Return the process-wide engine for *database_url*, creating it on first use."""
    if _engine is None or _engine_url != database_url:
        return configure_engine(database_url)
    return _engine


def reset_engine() -> None:
    global _engine, _engine_url  # noqa: PLW0603
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _engine_url = None


@contextmanager
def get_session() -> Generator[Session, None, None]:
    with Session(get_engine()) as session:
        yield session


def ensure_vector_extension() -> None:
    engine = get_engine()
    if engine.dialect.name != "postgresql":
        return
    with engine.connect() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        conn.commit()
    _logger.info("vector_extension_ready")
