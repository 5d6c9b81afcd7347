# flashdeck/database.py
from sqlmodel import SQLModel, create_engine
import os

from flashdeck.config import DB_FILE
from flashdeck.core.log_manager import logger

DATABASE_URL = f"sqlite:///{DB_FILE}"

# check_same_thread=False is needed for SQLite with NiceGUI/FastAPI concurrency
engine = create_engine(DATABASE_URL, echo=False, connect_args={"check_same_thread": False})


def make_engine(url: str):
    """Engine factory for alternate databases (tests, tools)."""
    return create_engine(url, echo=False, connect_args={"check_same_thread": False})


def init_db(target_engine=None):
    """
    Creates the key/value table.
    Should be called on app startup.
    """
    from flashdeck.models import StoredValue  # Import to register the table
    target_engine = target_engine or engine
    if target_engine is engine:
        db_dir = os.path.dirname(DB_FILE)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
    SQLModel.metadata.create_all(target_engine)
    logger.info(f"Database initialized at {target_engine.url}")
