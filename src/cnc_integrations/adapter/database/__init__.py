"""Database integration adapter and its backend seam."""

from .adapter import DatabaseAdapter, DatabaseVerb
from .backend import ColumnSpec, DatabaseBackend, SQLAlchemyBackend
from .config import DatabaseConfig, PoolConfig

__all__ = [
    "DatabaseAdapter",
    "DatabaseVerb",
    "DatabaseBackend",
    "SQLAlchemyBackend",
    "ColumnSpec",
    "DatabaseConfig",
    "PoolConfig",
]
