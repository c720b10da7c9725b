from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from config import Settings

SQLALCHEMY_DATABASE_URL = Settings.DATABASE_URL


def make_engine(url: str = SQLALCHEMY_DATABASE_URL):
    """Create an engine; SQLite gets FK enforcement for exercise cascades."""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every checkout sees an empty database
        engine = create_engine(url, connect_args=connect_args, poolclass=StaticPool)
    else:
        engine = create_engine(url, connect_args=connect_args)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = make_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=True, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    """Create tables (if missing)."""
    import models  # noqa: F401 - registers tables on Base
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
