"""Database initialization script."""

from pathlib import Path

from wabnet.config import settings
from wabnet.database import Base, engine
from wabnet.models import Opportunity  # noqa: F401


def init_database():
    """
    Initialize the database by creating all tables.

    Creates the data root first so the SQLite file can be opened.  Safe to
    run multiple times as it won't recreate existing tables.
    """
    Path(settings.data_root).mkdir(parents=True, exist_ok=True)
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("Database tables created successfully!")
    print(f"Tables created: {', '.join(Base.metadata.tables.keys())}")


if __name__ == "__main__":
    init_database()
