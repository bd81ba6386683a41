from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from sqlalchemy.orm.exc import StaleDataError
from .config import settings
from .errors import ConcurrencyError

# Create engine
connect_args = {}
if "sqlite" in settings.DATABASE_URL:
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=connect_args,
    pool_pre_ping=True,
    echo=settings.DEBUG
)


def set_sqlite_pragma(dbapi_connection, connection_record):
    """WAL for concurrent readers, FK enforcement for cascades"""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


if "sqlite" in settings.DATABASE_URL:
    event.listen(engine, "connect", set_sqlite_pragma)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()

# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_or_conflict(db: Session, what: str = "record") -> None:
    """
    Commit the unit of work. A revision mismatch on any versioned row
    (someone else updated it since we read it) becomes ConcurrencyError.
    """
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise ConcurrencyError(f"{what} was modified by another user, reload and retry")
