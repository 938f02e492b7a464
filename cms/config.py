"""
cms/config.py -- Runtime settings resolved from the environment.

Environment variables:
    TOURISM_CMS_DATA_DIR       Directory holding the JSON documents.
    TOURISM_CMS_USE_USER_DIR   ``1`` to keep data in the platform user data
                               directory instead of ``<project>/data``.
    TOURISM_CMS_LANGUAGE       ``th`` (default) or ``en``.
    TOURISM_CMS_BACKUP_KEEP    Snapshots kept per document (default 10).
    TOURISM_CMS_LOG_LEVEL      Logging level name (default ``INFO``).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from platformdirs import user_data_dir

logger = logging.getLogger(__name__)

_APP_NAME = "TourismCMS"
_APP_AUTHOR = "TourismCMS"

ENV_PREFIX = "TOURISM_CMS_"
DEFAULT_LANGUAGE = "th"
DEFAULT_BACKUP_KEEP = 10


def get_project_root() -> str:
    """Return the repository root (one level up from ``cms/``)."""
    return os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def get_user_data_dir() -> str:
    """Return the platform-appropriate user data directory for documents."""
    return os.path.join(user_data_dir(_APP_NAME, _APP_AUTHOR), "data")


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Resolved configuration.  Build with :meth:`from_env` in production."""

    data_dir: str
    language: str = DEFAULT_LANGUAGE
    backup_keep: int = DEFAULT_BACKUP_KEEP
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ

        data_dir = env.get(ENV_PREFIX + "DATA_DIR")
        if not data_dir:
            if _truthy(env.get(ENV_PREFIX + "USE_USER_DIR")):
                data_dir = get_user_data_dir()
            else:
                data_dir = os.path.join(get_project_root(), "data")

        language = (env.get(ENV_PREFIX + "LANGUAGE") or DEFAULT_LANGUAGE).strip().lower()
        if language not in ("th", "en"):
            logger.warning("Unsupported language %r, falling back to %s", language, DEFAULT_LANGUAGE)
            language = DEFAULT_LANGUAGE

        raw_keep = env.get(ENV_PREFIX + "BACKUP_KEEP")
        backup_keep = DEFAULT_BACKUP_KEEP
        if raw_keep:
            try:
                backup_keep = int(raw_keep)
            except ValueError:
                logger.warning("Ignoring non-numeric %sBACKUP_KEEP=%r", ENV_PREFIX, raw_keep)
            if backup_keep < 1:
                logger.warning("%sBACKUP_KEEP must be positive; using %d", ENV_PREFIX, DEFAULT_BACKUP_KEEP)
                backup_keep = DEFAULT_BACKUP_KEEP

        log_level = (env.get(ENV_PREFIX + "LOG_LEVEL") or "INFO").upper()

        return cls(
            data_dir=os.path.abspath(data_dir),
            language=language,
            backup_keep=backup_keep,
            log_level=log_level,
        )
