from .engine import (
    close_database_engine,
    create_database_engine,
    create_session_factory,
)

__all__ = [
    "close_database_engine",
    "create_database_engine",
    "create_session_factory",
]
