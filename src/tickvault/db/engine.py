"""Database engine management. 🔧

The engine (and its connection pool) is created once by each entry point and
passed explicitly to everything that touches storage.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import QueuePool

from tickvault.config import Settings
from tickvault.logging_config import get_logger

logger = get_logger(__name__)


def create_db_engine(settings: Settings) -> Engine:
    """Create a SQLAlchemy engine with connection pooling.

    The pool provides connection reuse and ``pool_pre_ping`` replaces
    connections the server has dropped. SQLite URLs keep SQLAlchemy's default
    pool (used by tests and local experiments).

    Args:
        settings: Application settings holding the connection parameters.

    Returns:
        SQLAlchemy Engine instance.
    """
    url = make_url(settings.sqlalchemy_url)

    if url.get_backend_name() == "sqlite":
        engine = create_engine(url, echo=False)
    else:
        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
            echo=False,  # Set to True for SQL debugging
        )

    logger.info(
        f"🔗 Storage engine ready: {url.get_backend_name()} at "
        f"{url.host or 'local'}:{url.port or '-'} / {url.database}"
    )
    return engine
