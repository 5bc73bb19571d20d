from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from config import DATABASE_URL, LOCK_TIMEOUT_SECONDS

engine = create_engine(
    DATABASE_URL,
    # sqlite busy timeout; adds to the per-asset lock wait (see config.LOCK_TIMEOUT_SECONDS)
    connect_args={"check_same_thread": False, "timeout": LOCK_TIMEOUT_SECONDS},
)


@event.listens_for(engine, "connect")
def set_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    try:
        # lending_records.asset_id is ON DELETE RESTRICT; sqlite ignores it without this
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.execute("PRAGMA journal_mode=WAL;")
    finally:
        cursor.close()


SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

class Base(DeclarativeBase):
    pass
