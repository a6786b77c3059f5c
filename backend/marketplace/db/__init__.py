from .session import Base, SessionLocal, create_tables, drop_tables, get_engine

__all__ = [
    "Base",
    "SessionLocal",
    "create_tables",
    "drop_tables",
    "get_engine",
]
