"""Database session management."""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from sealsign_api.settings import get_settings


def use_explicit_sqlite_transactions(engine: Engine, begin_statement: str = "BEGIN") -> Engine:
    """Have SQLAlchemy, not pysqlite, open SQLite transactions.

    pysqlite defers BEGIN until the first DML statement, so a SAVEPOINT
    issued first would open (and its RELEASE would commit) the outer
    transaction. The audit ledger appends inside savepoints.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql(begin_statement)

    return engine


settings = get_settings()

if settings.database_url_computed.startswith("sqlite"):
    engine = use_explicit_sqlite_transactions(
        create_engine(
            settings.database_url_computed,
            connect_args={"check_same_thread": False},
        )
    )
else:
    engine = create_engine(
        settings.database_url_computed,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
