# marketstock/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv

from marketstock.config import settings

load_dotenv()

# 1. Database URL from settings (local SQLite by default)
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# 2. Hosted Postgres hands out postgres:// URLs, SQLAlchemy needs postgresql://
if SQLALCHEMY_DATABASE_URL and SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: str):
    # check_same_thread only exists for SQLite
    if "sqlite" in url:
        connect_args = {"check_same_thread": False}
    else:
        connect_args = {}
    engine = create_engine(url, connect_args=connect_args)
    # SQLite leaves foreign keys off unless asked, every other backend enforces them
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


engine = make_engine(SQLALCHEMY_DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory():
    """Session factory for work that needs one session per worker thread."""
    return SessionLocal


def init_db():
    # Register every model on Base.metadata before creating tables
    import marketstock.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
