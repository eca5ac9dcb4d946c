from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


def create_db_engine(database_uri: str, echo: bool = False) -> Engine:
    """Build an engine for the notification store.

    PostgreSQL gets the pooled configuration used in production. SQLite URIs
    (local development and tests) share one connection across threads.
    """
    if database_uri.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_uri or database_uri == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_uri, echo=echo, **kwargs)

    return create_engine(
        database_uri,
        pool_size=10,
        max_overflow=20,
        pool_recycle=300,      # Recycle connections every 5 minutes
        pool_pre_ping=True,    # Validate connections before use
        pool_timeout=30,
        echo=echo,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
