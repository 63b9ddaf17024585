from dbdrill.db.engine import get_engine, normalize_dsn
from dbdrill.db.memory import InMemoryDatabase, RecordedQuery, make_rows
from dbdrill.db.postgres import PostgresDatabase

__all__ = [
    "InMemoryDatabase",
    "PostgresDatabase",
    "RecordedQuery",
    "get_engine",
    "make_rows",
    "normalize_dsn",
]
