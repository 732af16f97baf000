from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session

from storefront.core_settings import Settings
from storefront.domain.models import Base


def create_db_engine(settings: Settings) -> Engine:
    """Build the engine for the configured database.

    Postgres connections get lock/statement timeouts so a checkout blocked on
    a contended product row aborts instead of hanging. SQLite connections open
    write transactions (those started with ``WRITE_OPTIONS``) with
    ``BEGIN IMMEDIATE``, which takes the database write lock up front and
    serializes checkouts the same way row locks do. Reads use a plain
    ``BEGIN`` and do not queue behind a checkout.
    """
    url = make_url(settings.database_url)

    if url.get_backend_name() == "sqlite":
        engine = create_engine(
            url,
            echo=False,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.DB_LOCK_TIMEOUT_MS / 1000,
            },
        )
        _use_immediate_transactions(engine)
        return engine

    options = (
        f"-c lock_timeout={settings.DB_LOCK_TIMEOUT_MS} "
        f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"
    )
    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        connect_args={"options": options},
    )


# Execution options marking a transaction that will write; ignored outside SQLite
WRITE_OPTIONS = {"sqlite_immediate": True}


def _use_immediate_transactions(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        # let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        if conn.get_execution_options().get("sqlite_immediate"):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def init_models(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
