"""Database session. SQLite compatible with connection pooling."""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from vendi.core.config import settings


def build_engine(database_url: str):
    """Create an engine with pooling suited to the backend."""
    if database_url.startswith("sqlite"):
        # SQLite: NullPool for thread-safety; in-memory DBs need a single shared connection
        from sqlalchemy.pool import NullPool, StaticPool

        in_memory = database_url in ("sqlite://", "sqlite:///:memory:")
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if in_memory else NullPool,
        )

    # PostgreSQL/MySQL: QueuePool with sensible defaults
    return create_engine(
        database_url,
        pool_size=5,  # Number of persistent connections
        max_overflow=10,  # Max temporary connections
        pool_timeout=30,  # Seconds to wait for connection
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_pre_ping=True,  # Verify connection health
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
