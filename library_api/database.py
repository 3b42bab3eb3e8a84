from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from urllib.parse import quote_plus
from library_api.config import settings

Base = declarative_base()

def build_database_url(cfg=settings) -> str:
    """Database URL from settings, PostgreSQL unless database_url overrides it."""
    if cfg.database_url:
        return cfg.database_url
    db_user = quote_plus(cfg.db_user)
    db_password = quote_plus(cfg.db_password)
    return f"postgresql://{db_user}:{db_password}@{cfg.db_host}:{cfg.db_port}/{cfg.db_name}"

def create_db_engine(url: str, timeout: float, ssl_mode: str = "disable"):
    if url.startswith("sqlite"):
        # SQLite: busy timeout instead of a connection pool, shared across threads
        return create_engine(
            url,
            echo=False,
            connect_args={"timeout": timeout, "check_same_thread": False},
        )

    connect_args = {"connect_timeout": max(1, int(timeout))}
    if url.startswith("postgresql") and ssl_mode != "disable":
        connect_args["sslmode"] = ssl_mode

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_size=10,
        max_overflow=20,
        pool_timeout=timeout,
        echo=False,
        connect_args=connect_args
    )

def create_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
