"""
datastore/repository.py -- Typed facade over the document store.

``DataRepository`` is the only object route handlers and services talk to.
Every public method returns a tagged result dict and never raises::

    {"success": True, "data": [...], "message": "..."}                # plain read
    {"success": True, "data": [...], "recovered": True, ...}          # restored from backup
    {"success": True, "data": [...], "created": True, ...}            # default synthesised
    {"success": False, "error": "...", "suggestions": [...], ...}     # failure

Read recovery policy:
    1. Read the document normally.
    2. On ``DocumentNotFound`` or ``DocumentParseError``, restore the newest
       backup and read once more.
    3. If that fails too, write the default document and return it.
    Only a failure of step 3 (e.g. an unwritable disk) is reported as a
    failure.  Validation and other I/O errors are reported directly.

Usage:
    from datastore.repository import DataRepository

    repo = DataRepository("/srv/tourism-cms/data")
    result = repo.get_categories()
    if result["success"]:
        categories = result["data"]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from datastore.backup_manager import DEFAULT_KEEP_COUNT, BackupRotator
from datastore.error_handler import ErrorHandler
from datastore.exceptions import DocumentNotFound, DocumentParseError, RecoveryError, StoreError
from datastore.file_store import JSONFileStore
from datastore.health import HealthReporter
from datastore.utils import document_filename

logger = logging.getLogger(__name__)

PLACES_FILE = "places.json"
CATEGORIES_FILE = "categories.json"
USERS_FILE = "users.json"

_MESSAGES = {
    "read": {"th": "อ่านไฟล์ {filename} สำเร็จ", "en": "Read {filename} successfully"},
    "recovered": {
        "th": "กู้คืนและอ่านไฟล์ {filename} สำเร็จ",
        "en": "Recovered {filename} from backup and read it successfully",
    },
    "created": {
        "th": "สร้างไฟล์เริ่มต้น {filename} สำเร็จ",
        "en": "Created default {filename}",
    },
    "written": {"th": "บันทึกไฟล์ {filename} สำเร็จ", "en": "Saved {filename} successfully"},
    "restored": {"th": "กู้คืนไฟล์ {filename} สำเร็จ", "en": "Recovered {filename} successfully"},
}

_RECOVERABLE = (DocumentNotFound, DocumentParseError)


class DataRepository:
    """Document access with backup recovery and uniform results.

    Parameters
    ----------
    data_dir : str or pathlib.Path
        Directory holding ``places.json``, ``categories.json``, ``users.json``.
    language : str
        Language of user-facing messages (``"th"`` or ``"en"``).
    keep_count : int
        Snapshots retained per document.
    """

    def __init__(self, data_dir, language: str = "th", keep_count: int = DEFAULT_KEEP_COUNT):
        self.data_dir = Path(data_dir).resolve()
        self.rotator = BackupRotator(self.data_dir, keep_count=keep_count)
        self.store = JSONFileStore(self.data_dir, rotator=self.rotator)
        self.errors = ErrorHandler(self.data_dir, language=language)
        self.language = self.errors.language
        self.health = HealthReporter(self.data_dir, rotator=self.rotator, language=self.language)

    @classmethod
    def from_settings(cls, settings) -> "DataRepository":
        """Build a repository from a ``cms.config.Settings`` instance."""
        return cls(
            settings.data_dir,
            language=settings.language,
            keep_count=settings.backup_keep,
        )

    def _msg(self, key: str, filename: str) -> str:
        return _MESSAGES[key][self.language].format(filename=filename)

    # ------------------------------------------------------------------
    # Generic document access
    # ------------------------------------------------------------------

    def read_document(self, name: str) -> dict[str, Any]:
        """Read document *name*, recovering or synthesising it if needed."""
        filename = document_filename(name)
        try:
            data = self.store.read(filename)
            return {"success": True, "data": data, "message": self._msg("read", filename)}
        except _RECOVERABLE as exc:
            self.errors.handle_error(exc, "read", filename)
        except StoreError as exc:
            return self.errors.handle_error(exc, "read", filename)
        except Exception as exc:  # nothing may escape this layer
            logger.exception("Unexpected error reading %s", filename)
            return self.errors.handle_error(exc, "read", filename)

        logger.info("Trying to recover %s from backup", filename)
        if self.rotator.recover(filename):
            try:
                data = self.store.read(filename)
                return {
                    "success": True,
                    "data": data,
                    "message": self._msg("recovered", filename),
                    "recovered": True,
                }
            except Exception as exc:
                logger.warning("Recovered %s is still unreadable (%s); creating default", filename, exc)

        try:
            data = self.store.create_default(filename)
        except Exception as exc:
            logger.error("Could not create default %s", filename)
            return self.errors.handle_error(exc, "create_default", filename)

        return {
            "success": True,
            "data": data,
            "message": self._msg("created", filename),
            "created": True,
        }

    def write_document(self, name: str, data) -> dict[str, Any]:
        """Validate and persist *data* as document *name*."""
        filename = document_filename(name)
        try:
            self.store.write(filename, data)
        except Exception as exc:
            if not isinstance(exc, StoreError):
                logger.exception("Unexpected error writing %s", filename)
            return self.errors.handle_error(exc, "write", filename)
        return {"success": True, "message": self._msg("written", filename)}

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def health_check(self) -> dict[str, Any]:
        try:
            return self.health.system_health_check()
        except Exception as exc:
            logger.exception("Health check failed")
            return self.errors.handle_error(exc, "health_check")

    def check_file(self, name: str) -> dict[str, Any]:
        filename = document_filename(name)
        try:
            return self.health.check_file_integrity(filename)
        except Exception as exc:
            logger.exception("Integrity check failed for %s", filename)
            return self.errors.handle_error(exc, "check", filename)

    def recover_file(self, name: str) -> dict[str, Any]:
        filename = document_filename(name)
        try:
            recovered = self.rotator.recover(filename)
        except Exception as exc:
            return self.errors.handle_error(exc, "recover", filename)
        if not recovered:
            exc = RecoveryError(f"No backup found for {filename}", filename=filename)
            return self.errors.handle_error(exc, "recover", filename)
        return {"success": True, "message": self._msg("restored", filename)}

    def create_default_file(self, name: str) -> dict[str, Any]:
        filename = document_filename(name)
        try:
            self.store.create_default(filename)
        except Exception as exc:
            return self.errors.handle_error(exc, "create_default", filename)
        return {"success": True, "message": self._msg("created", filename)}

    def list_backups(self, name: str | None = None) -> list[dict]:
        return self.rotator.list_backups(name)

    # ------------------------------------------------------------------
    # Typed convenience methods
    # ------------------------------------------------------------------

    def get_places(self) -> dict[str, Any]:
        return self.read_document(PLACES_FILE)

    def save_places(self, places: list) -> dict[str, Any]:
        return self.write_document(PLACES_FILE, places)

    def get_categories(self) -> dict[str, Any]:
        return self.read_document(CATEGORIES_FILE)

    def save_categories(self, categories: list) -> dict[str, Any]:
        return self.write_document(CATEGORIES_FILE, categories)

    def get_users(self) -> dict[str, Any]:
        return self.read_document(USERS_FILE)

    def save_users(self, users: list) -> dict[str, Any]:
        return self.write_document(USERS_FILE, users)
