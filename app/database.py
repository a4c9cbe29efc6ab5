from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.config import settings


def _build_database_url() -> str:
    raw_url = settings.database_url
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return raw_url


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        # Request threads share the pool; SQLite serializes the writes itself.
        return {"check_same_thread": False, "timeout": 15}
    return {}


DATABASE_URL = _build_database_url()
engine = create_engine(
    DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args(DATABASE_URL)
)
SessionLocal = sessionmaker(
    bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
)
Base = declarative_base()


def init_db() -> None:
    if not DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not configured")
    from app.models.schema import otp as _otp  # noqa: F401
    from app.models.schema import principal as _principal  # noqa: F401
    from app.models.schema import session as _session  # noqa: F401

    Base.metadata.create_all(bind=engine)


@contextmanager
def session_scope():
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
