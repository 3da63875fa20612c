"""
config.py
---------
Centralised configuration management for the DDL engine.

Loads settings from environment variables (with .env file support via
python-dotenv). Provides typed settings as frozen dataclasses so
configuration is immutable at runtime.

Design Decision:
    Class-level defaults mean the engine works "out of the box" without
    any .env file, while still allowing environment-based overrides for
    deployments that need different MySQL table options or thresholds.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    load_dotenv(dotenv_path=_env_path)


@dataclass(frozen=True)
class DatabaseConfig:
    """Default connection settings applied when a connection omits them."""
    host: str = field(default_factory=lambda: os.getenv("DB_HOST", "localhost"))
    mysql_port: int = field(default_factory=lambda: int(os.getenv("MYSQL_PORT", "3306")))
    postgres_port: int = field(
        default_factory=lambda: int(os.getenv("POSTGRES_PORT", "5432"))
    )
    charset: str = field(default_factory=lambda: os.getenv("DB_CHARSET", "utf8mb4"))
    connect_timeout: int = field(
        default_factory=lambda: int(os.getenv("DB_CONNECT_TIMEOUT", "10"))
    )
    # Credentials are NOT stored here; they travel with each ConnectionConfig.


@dataclass(frozen=True)
class DDLConfig:
    """DDL generation, validation and logging settings."""
    mysql_engine: str = field(
        default_factory=lambda: os.getenv("DDL_MYSQL_ENGINE", "InnoDB")
    )
    mysql_charset: str = field(
        default_factory=lambda: os.getenv("DDL_MYSQL_CHARSET", "utf8mb4")
    )
    mysql_collation: str = field(
        default_factory=lambda: os.getenv("DDL_MYSQL_COLLATION", "utf8mb4_unicode_ci")
    )
    max_identifier_length: int = field(
        default_factory=lambda: int(os.getenv("DDL_MAX_IDENTIFIER_LENGTH", "63"))
    )
    wide_index_threshold: int = field(
        default_factory=lambda: int(os.getenv("DDL_WIDE_INDEX_THRESHOLD", "6"))
    )
    many_indexes_threshold: int = field(
        default_factory=lambda: int(os.getenv("DDL_MANY_INDEXES_THRESHOLD", "10"))
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    log_file: str | None = field(
        default_factory=lambda: os.getenv("LOG_FILE")  # None → log to stderr only
    )
    log_sql: bool = field(
        default_factory=lambda: os.getenv("DDL_LOG_SQL", "false").lower() in ("1", "true", "yes")
    )


@dataclass(frozen=True)
class AppConfig:
    """Root application configuration."""
    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    ddl: DDLConfig = field(default_factory=DDLConfig)
    app_name: str = "Schema DDL Engine"
    app_version: str = "1.0.0"


def load_config() -> AppConfig:
    """
    Build and return the application configuration.

    Returns:
        AppConfig: Fully populated (and frozen) configuration object.

    Example::

        cfg = load_config()
        print(cfg.ddl.mysql_engine)          # "InnoDB"
        print(cfg.ddl.wide_index_threshold)  # 6
    """
    return AppConfig()


# Module-level singleton used throughout the application
CONFIG: AppConfig = load_config()


def get_log_level() -> int:
    """Convert string log level from config to logging module constant."""
    level = getattr(logging, CONFIG.ddl.log_level, None)
    if not isinstance(level, int):
        return logging.INFO
    return level
