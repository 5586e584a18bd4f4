from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from slack_broker.models.slack_token import Base


def normalize_database_url(url: str) -> str:
    # Prefer psycopg v3 driver if not specified
    if url.startswith("postgresql://") and "+psycopg" not in url:
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def build_engine(url: str) -> Engine:
    url = normalize_database_url(url)
    in_memory = url in ("sqlite://", "sqlite+pysqlite://") or (url.startswith("sqlite") and ":memory:" in url)
    if in_memory:
        # In-memory SQLite lives in one connection; share it across sessions
        return create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=False, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create the token table if it does not exist yet."""
    Base.metadata.create_all(engine)
