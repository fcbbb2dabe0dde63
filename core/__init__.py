"""
Core utilities and configuration for the ledger migration engine.

Modules:
    config: Settings loaded from the environment / .env
    database: Async engine, session factory and dialect helpers
    exceptions: Exception hierarchy with structured context
    logging: Logging configuration

Usage:
    from core.config import settings
    from core.database import create_engine_from_settings, create_session_maker
    from core.exceptions import ConfigurationError, TransactionError
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "create_engine_from_settings",
    "create_session_maker",
    "dialect_insert",
    "setup_logging",
    # Exceptions
    "MigrationException",
    "ConfigurationError",
    "RowError",
    "ValidationError",
    "ReferentialGapError",
    "TransactionError",
    "ConcurrentRunError",
]
