"""
Database session management (SQLAlchemy)
"""
import psycopg
from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from subledger.config import get_settings


class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base for all ORM models
    """
    pass


# Singleton engine and session factory
_engine = None
_SessionLocal = None


def get_engine():
    """Get or create SQLAlchemy engine (singleton)"""
    global _engine
    if _engine is None:
        settings = get_settings()
        url = settings.get_sqlalchemy_url()
        _engine = create_engine(url, pool_pre_ping=True)
    return _engine


def get_session_factory():
    """Get or create session factory (singleton)"""
    global _SessionLocal
    if _SessionLocal is None:
        engine = get_engine()
        _SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    return _SessionLocal


def get_db() -> Session:
    """
    Dependency для FastAPI - создает session и автоматически закрывает

    Usage:
        @app.get("/assets")
        def list_assets(db: Session = Depends(get_db)):
            ...
    """
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def begin_snapshot_read(db: Session) -> None:
    """
    Pin the session to one snapshot for a multi-query read.

    PostgreSQL gets READ_ISOLATION_LEVEL on the session's connection, so an
    aggregation never observes a half-applied billing step. Other dialects
    keep their default (SQLite serializes writers anyway).
    """
    if db.get_bind().dialect.name != "postgresql":
        return
    if db.in_transaction():
        if db.new or db.dirty or db.deleted:
            return
        # только чтения (например, get_current_user) - начинаем новый snapshot
        db.rollback()
    db.connection(execution_options={"isolation_level": get_settings().READ_ISOLATION_LEVEL})


def check_db_connection() -> None:
    """
    Health check - проверка доступности БД

    PostgreSQL проверяется через raw psycopg (не зависит от пула),
    остальные диалекты - через engine.

    Raises:
        psycopg.OperationalError / sqlalchemy.exc.OperationalError: если БД недоступна
    """
    settings = get_settings()
    if settings.DATABASE_URL.startswith("postgresql"):
        dsn = settings.DATABASE_URL.replace("postgresql+psycopg://", "postgresql://", 1)
        with psycopg.connect(dsn, connect_timeout=3) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return

    with get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))
