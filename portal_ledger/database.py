# portal_ledger/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL, SQLITE_BUSY_TIMEOUT
from .logging_setup import get_logger

logger = get_logger("database")

Base = declarative_base()


def _mask_url(url: str) -> str:
    if "@" in url and ":" in url.split("@", 1)[0].split("//", 1)[-1]:
        scheme_user = url.split("@", 1)[0].rsplit(":", 1)[0]
        return f"{scheme_user}:****@{url.split('@', 1)[1]}"
    return url


WRITE_LOCK_OPTION = "sqlite_begin_immediate"


def _use_explicit_begin(engine: Engine) -> None:
    # pysqlite's own BEGIN handling is switched off so the begin event decides:
    # write units take the lock up front, everything else begins deferred.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get(WRITE_LOCK_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
        _use_explicit_begin(engine)
        logger.info(f"Database backend: SQLite ({url})")
        return engine

    logger.info(f"Database backend: {_mask_url(url)}")
    return create_engine(url, pool_pre_ping=True, pool_recycle=300)


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind: Engine = engine) -> None:
    # models must be imported so their tables and triggers are registered
    from . import models, models_audit  # noqa: F401

    Base.metadata.create_all(bind=bind)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def begin_write(db: Session) -> None:
    """
    Start the session's transaction holding the database write lock
    (``BEGIN IMMEDIATE`` on SQLite). Must run before the session touches the
    database. Other backends ignore the option and rely on row locks.
    """
    db.connection(execution_options={WRITE_LOCK_OPTION: True})
