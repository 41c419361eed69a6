from .session import Base, engine, AsyncSessionLocal, get_db, init_db, ensure_settings_rows

__all__ = [
    "Base",
    "engine",
    "AsyncSessionLocal",
    "get_db",
    "init_db",
    "ensure_settings_rows"
]
