"""
datastore/file_store.py -- Durable read/write of named JSON documents.

Each document (``places.json``, ``categories.json``, ``users.json``) is one
JSON array stored directly in the data directory.  Reads are validated
against the document schema; writes are validated *before* any disk I/O,
snapshot the previous content through the ``BackupRotator``, replace the
file atomically, then prune old snapshots.

Writes to the same document are serialised with a per-document lock.  A
caller's read-modify-write cycle is not, so two overlapping edits still
resolve as last-write-wins on the whole document.

Usage:
    from datastore.file_store import JSONFileStore

    store = JSONFileStore("/srv/tourism-cms/data")
    places = store.read("places.json")
    places.append(new_place)
    store.write("places.json", places)
"""

import json
import logging
import threading
from pathlib import Path

from datastore.backup_manager import BackupRotator
from datastore.defaults import default_document
from datastore.exceptions import (
    DocumentNotFound,
    DocumentParseError,
    StorageIOError,
    errno_name,
)
from datastore.schemas import validate_document
from datastore.utils import document_filename, safe_write_json

logger = logging.getLogger(__name__)


class JSONFileStore:
    """Reads and writes validated JSON documents in *data_dir*.

    Parameters
    ----------
    data_dir : str or pathlib.Path
        Directory that holds the documents.  Created on first write.
    rotator : BackupRotator, optional
        Snapshot manager; one rooted at *data_dir* is created if omitted.
    """

    def __init__(self, data_dir, rotator: BackupRotator | None = None):
        self.data_dir = Path(data_dir).resolve()
        self.rotator = rotator or BackupRotator(self.data_dir)

        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Paths and locks
    # ------------------------------------------------------------------

    def path_for(self, name: str) -> Path:
        return self.data_dir / document_filename(name)

    def lock_for(self, name: str) -> threading.RLock:
        """Return the lock serialising writes to document *name*."""
        filename = document_filename(name)
        with self._locks_guard:
            lock = self._locks.get(filename)
            if lock is None:
                lock = threading.RLock()
                self._locks[filename] = lock
            return lock

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def read(self, name: str) -> list:
        """Load and validate document *name*.

        An existing file that is empty (or whitespace only) reads as ``[]``.

        Raises
        ------
        DocumentNotFound
            The file does not exist.
        DocumentParseError
            The file content is not valid JSON.
        DocumentValidationError
            The JSON does not match the document schema.
        StorageIOError
            Any other OS-level failure (permissions, too many open files ...).
        """
        filename = document_filename(name)
        path = self.path_for(filename)

        try:
            with open(str(path), "r", encoding="utf-8") as fh:
                text = fh.read()
        except FileNotFoundError as exc:
            raise DocumentNotFound(f"File {filename} was not found", filename=filename) from exc
        except UnicodeDecodeError as exc:
            raise DocumentParseError(
                f"File {filename} is not valid UTF-8 text", filename=filename
            ) from exc
        except OSError as exc:
            raise StorageIOError(
                f"Could not read {filename}: {exc.strerror or exc}",
                filename=filename,
                errno_name=errno_name(exc),
            ) from exc

        if not text.strip():
            logger.warning("Document %s is empty, treating it as an empty list", filename)
            return []

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DocumentParseError(
                f"File {filename} contains invalid JSON: {exc.msg} "
                f"(line {exc.lineno}, column {exc.colno})",
                filename=filename,
                lineno=exc.lineno,
                colno=exc.colno,
            ) from exc
        except (RecursionError, ValueError) as exc:
            # nesting deeper than the interpreter's recursion limit
            raise DocumentParseError(
                f"File {filename} contains JSON that cannot be decoded: {exc}",
                filename=filename,
            ) from exc

        validate_document(filename, data)
        return data

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def write(self, name: str, document) -> None:
        """Validate, snapshot, and atomically persist *document* as *name*.

        Validation happens before any disk access; an invalid document
        leaves both the file and the backup directory untouched.

        Raises
        ------
        DocumentValidationError
            *document* does not match the schema.
        StorageIOError
            The snapshot or the write failed at the OS level.
        """
        filename = document_filename(name)
        validate_document(filename, document)

        with self.lock_for(filename):
            self.rotator.snapshot(filename)
            self._persist(filename, document)
            self.rotator.prune(filename)

        logger.info("Saved %s (%d records)", filename, len(document))

    def create_default(self, name: str) -> list:
        """Persist the seed document for *name* and return it."""
        filename = document_filename(name)
        document = default_document(filename)
        validate_document(filename, document)

        with self.lock_for(filename):
            self._persist(filename, document)

        logger.info("Created default %s", filename)
        return document

    def _persist(self, filename: str, document) -> None:
        try:
            safe_write_json(str(self.path_for(filename)), document)
        except OSError as exc:
            raise StorageIOError(
                f"Could not write {filename}: {exc.strerror or exc}",
                filename=filename,
                errno_name=errno_name(exc),
            ) from exc
        except (TypeError, ValueError) as exc:
            # Not JSON-serialisable; nothing was written.
            raise StorageIOError(
                f"Could not serialise {filename}: {exc}",
                filename=filename,
                errno_name="EINVAL",
            ) from exc
