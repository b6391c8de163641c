"""
core/db.py -- Engine factory shared by the in-memory stores.

SQLite memory databases live and die with their connection, so they are
pinned to one shared connection via StaticPool. check_same_thread=False lets
the FastAPI threadpool use that connection; each store's lock serializes
access to it. Data resets on every restart.

Non-sqlite URLs get the driver's default pool.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

MEMORY_DB_URL = "sqlite://"


def make_engine(db_url: str = MEMORY_DB_URL) -> Engine:
    if db_url.startswith("sqlite"):
        return create_engine(db_url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(db_url)
