# studio_api/shared/db/database.py

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from studio_api.core.config import settings

# Engine manages the connection pool to PostgreSQL
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)

# Session factory, one session per request
Session_Local = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for every table model
Base = declarative_base()

# --- Dependency Injection for FastAPI ---
def get_db_session():
    """
    Opens a session for the endpoint and closes it when the request is done.
    """
    db = Session_Local()
    try:
        yield db
    finally:
        db.close()
