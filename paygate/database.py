from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

Base = declarative_base()


def create_session_factory(database_url: str, **engine_kwargs):
    """Build the engine and session factory for the order store.

    Called once at startup; the factory is handed to request handlers
    through ``app.state``.
    """
    if database_url.startswith("sqlite"):
        engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(database_url, **engine_kwargs)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)
