"""Database session management."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from neurolex_api.settings import get_settings

settings = get_settings()
database_url = settings.database_url_computed

engine_options = {"pool_pre_ping": True}
if database_url.startswith("sqlite"):
    # Sync routes run in the threadpool and share connections across threads
    engine_options["connect_args"] = {"check_same_thread": False}
else:
    engine_options.update(pool_size=10, max_overflow=20)

engine = create_engine(database_url, **engine_options)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Get a request-scoped session; the caller commits."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
