"""
logger.py
---------
Application-wide logging configuration.

Design Decisions:
    * A single root logger ("ddl_engine") is configured once at import time.
    * All modules obtain a child logger via ``get_logger(__name__)``.
    * Optional file handler appends lines to a persistent log file
      (path set via LOG_FILE env variable).
    * Generated SQL is logged at DEBUG only; INFO lines carry operation
      names and outcomes so production logs stay free of schema text.
    * Every statement sent to a database goes to the "ddl_engine.sql"
      logger. DDL_LOG_SQL=true gives it its own DEBUG handler, so the
      statement trail can be switched on without lowering LOG_LEVEL.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

from config import CONFIG, get_log_level

_ROOT_LOGGER_NAME = "ddl_engine"
SQL_LOGGER_NAME = f"{_ROOT_LOGGER_NAME}.sql"
_CONSOLE_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
_SQL_FORMAT = "%(asctime)s [SQL     ] %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_configured = False


def _configure_root_logger() -> None:
    """One-time setup of the root 'ddl_engine' logger and its handlers."""
    global _configured
    if _configured:
        return
    _configured = True

    root = logging.getLogger(_ROOT_LOGGER_NAME)
    root.setLevel(get_log_level())

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(get_log_level())
    console_handler.setFormatter(
        logging.Formatter(fmt=_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )
    root.addHandler(console_handler)

    if CONFIG.ddl.log_file:
        log_path = Path(CONFIG.ddl.log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                logging.Formatter(fmt=_FILE_FORMAT, datefmt=_DATE_FORMAT)
            )
            root.addHandler(file_handler)
        except OSError as exc:
            root.warning("Could not create log file '%s': %s", log_path, exc)

    if CONFIG.ddl.log_sql:
        sql_logger = logging.getLogger(SQL_LOGGER_NAME)
        sql_logger.setLevel(logging.DEBUG)
        sql_logger.propagate = False
        sql_handler = logging.StreamHandler(sys.stderr)
        sql_handler.setLevel(logging.DEBUG)
        sql_handler.setFormatter(logging.Formatter(fmt=_SQL_FORMAT, datefmt=_DATE_FORMAT))
        sql_logger.addHandler(sql_handler)
        for handler in root.handlers:
            if isinstance(handler, logging.FileHandler):
                sql_logger.addHandler(handler)


_configure_root_logger()


def get_logger(name: str) -> logging.Logger:
    """
    Return a child logger scoped to the given name.

    Args:
        name: Typically ``__name__`` of the calling module.

    Returns:
        A :class:`logging.Logger` instance under the 'ddl_engine' hierarchy.

    Example::

        log = get_logger(__name__)
        log.info("Creating table %s", table.name)
        log.debug("SQL: %s", sql)
    """
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")


def get_sql_logger() -> logging.Logger:
    """The logger that records each statement sent to a database."""
    return logging.getLogger(SQL_LOGGER_NAME)
