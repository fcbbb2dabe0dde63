"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings
from typing import Literal, Optional


class Settings(BaseSettings):
    """Migration settings with environment variable support"""

    # Target database (required for any run that touches the store)
    DATABASE_URL: Optional[str] = None

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Source snapshot
    SNAPSHOT_PATH: str = "data/store.json"
    SOURCE_LABEL: Optional[str] = None

    # Reconciliation artifact; empty disables persistence
    RECONCILIATION_REPORT_PATH: Optional[str] = "docs/MIGRATION_RECONCILIATION_REPORT.json"

    # Migration behaviour
    UNRESOLVED_PARENT_POLICY: Literal["drop", "fail"] = "drop"
    MIGRATION_DRY_RUN: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
