from grouprides.db.base import Base, JSONType
from grouprides.db.session import get_db, engine, SessionLocal
from grouprides.db.tables import ALL_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "JSONType", "ALL_TABLE_NAMES"]
