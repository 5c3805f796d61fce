"""
Core infrastructure package for the estimate engine.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg for the record store

This module re-exports key components from submodules for convenient importing:

    from estimate_engine.core import get_settings, get_db_pool

Components Re-exported:
    Settings: Pydantic settings class with all configuration parameters
    get_settings: Function returning the cached Settings singleton
    init_db: Async function to initialize the database connection pool
    close_db: Async function to close the database connection pool
    get_db_pool: Async function to get the database connection pool
"""

from estimate_engine.core.config import Settings, get_settings
from estimate_engine.core.database import init_db, close_db, get_db_pool

__all__ = [
    'Settings',
    'get_settings',
    'init_db',
    'close_db',
    'get_db_pool',
]
