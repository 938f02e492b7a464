"""
datastore/backup_manager.py -- Per-document snapshot rotation.

Before a managed document is overwritten, its current on-disk content is
copied to ``<data_dir>/backups/{base}_{timestamp}.json``.  Only the most
recent ``keep_count`` snapshots per document are retained.  When a document
cannot be read, ``recover()`` copies the newest snapshot back over it.

Usage:
    from datastore.backup_manager import BackupRotator

    rotator = BackupRotator("/srv/tourism-cms/data")
    rotator.snapshot("places.json")
    rotator.prune("places.json")
    rotator.recover("places.json")
    backups = rotator.list_backups("places")
"""

import logging
import os
import re
import shutil
from pathlib import Path

from datastore.exceptions import StorageIOError, errno_name
from datastore.utils import backup_stamp, document_base, document_filename

logger = logging.getLogger(__name__)

DEFAULT_KEEP_COUNT = 10

# {base}_{YYYY-MM-DDTHH-MM-SS-mmmZ}[_{n}].json
_STAMP_RE = r"(\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z)(?:_(\d+))?"


def _stamp_to_iso(stamp: str) -> str:
    """Turn ``2025-01-01T10-20-30-123Z`` back into ``2025-01-01T10:20:30.123Z``."""
    date_part, time_part = stamp.split("T", 1)
    hh, mm, ss, ms = time_part.rstrip("Z").split("-")
    return f"{date_part}T{hh}:{mm}:{ss}.{ms}Z"


class BackupRotator:
    """Creates, lists, prunes and restores document snapshots.

    Parameters
    ----------
    data_dir : str or pathlib.Path
        Directory holding the managed JSON documents.
    keep_count : int
        Number of most-recent snapshots retained per document (default 10).
    """

    def __init__(self, data_dir, keep_count: int = DEFAULT_KEEP_COUNT):
        self.data_dir = Path(data_dir).resolve()
        self.backups_dir = self.data_dir / "backups"
        self.keep_count = keep_count

    # ------------------------------------------------------------------
    # 1. Snapshot creation
    # ------------------------------------------------------------------

    def snapshot(self, name: str) -> str | None:
        """Copy the current content of document *name* to a timestamped backup.

        Returns
        -------
        str or None
            Path of the new snapshot, or ``None`` when the document does not
            exist yet (nothing to protect).

        Raises
        ------
        StorageIOError
            If the copy fails (permissions, disk full ...).
        """
        filename = document_filename(name)
        source = self.data_dir / filename
        if not source.is_file():
            return None

        try:
            os.makedirs(str(self.backups_dir), exist_ok=True)
            target = self._next_backup_path(document_base(filename))
            shutil.copy2(str(source), str(target))
        except OSError as exc:
            raise StorageIOError(
                f"Could not back up {filename}: {exc.strerror or exc}",
                filename=filename,
                errno_name=errno_name(exc),
            ) from exc

        logger.info("Backed up %s to %s", filename, target.name)
        return str(target)

    def _next_backup_path(self, base: str) -> Path:
        """Return an unused snapshot path for *base*.

        Snapshots taken within the same millisecond get an increasing
        numeric suffix, one past the highest already on disk, so a newer
        snapshot always sorts after an older one.
        """
        stamp = backup_stamp()
        pattern = re.compile(rf"^{re.escape(base)}_{re.escape(stamp)}(?:_(\d+))?\.json$")
        counters = []
        for entry in os.scandir(str(self.backups_dir)):
            match = pattern.match(entry.name)
            if match is not None:
                counters.append(int(match.group(1) or 0))
        if not counters:
            return self.backups_dir / f"{base}_{stamp}.json"
        return self.backups_dir / f"{base}_{stamp}_{max(counters) + 1}.json"

    # ------------------------------------------------------------------
    # 2. Listing and cleanup
    # ------------------------------------------------------------------

    def list_backups(self, name: str | None = None) -> list[dict]:
        """Return snapshots sorted newest first.

        Parameters
        ----------
        name : str, optional
            Restrict the listing to one document.  All documents when omitted.

        Returns
        -------
        list[dict]
            Each dict contains: ``path``, ``filename``, ``document``,
            ``timestamp``, ``size_bytes``.
        """
        backups: list[dict] = []
        if not self.backups_dir.is_dir():
            return backups

        if name is not None:
            pattern = re.compile(rf"^({re.escape(document_base(name))})_{_STAMP_RE}\.json$")
        else:
            pattern = re.compile(rf"^(.+?)_{_STAMP_RE}\.json$")

        for entry in os.scandir(str(self.backups_dir)):
            if not entry.is_file():
                continue
            match = pattern.match(entry.name)
            if match is None:
                continue
            base, stamp, counter = match.group(1), match.group(2), match.group(3)
            backups.append({
                "path": entry.path,
                "filename": entry.name,
                "document": f"{base}.json",
                "timestamp": _stamp_to_iso(stamp),
                "size_bytes": entry.stat().st_size,
                "_sort": (stamp, int(counter or 0)),
            })

        backups.sort(key=lambda b: b["_sort"], reverse=True)
        for backup in backups:
            del backup["_sort"]
        return backups

    def count(self) -> int:
        """Return the number of ``.json`` files in the backup directory."""
        if not self.backups_dir.is_dir():
            return 0
        return sum(
            1 for entry in os.scandir(str(self.backups_dir))
            if entry.is_file() and entry.name.endswith(".json")
        )

    def latest_backup(self, name: str) -> dict | None:
        backups = self.list_backups(name)
        return backups[0] if backups else None

    def prune(self, name: str, keep_count: int | None = None) -> list[str]:
        """Keep only the *keep_count* most recent snapshots of document *name*.

        Returns
        -------
        list[str]
            Paths of snapshots that were deleted.
        """
        keep = self.keep_count if keep_count is None else keep_count
        to_delete = self.list_backups(name)[keep:]
        deleted: list[str] = []

        for backup in to_delete:
            path = backup["path"]
            try:
                os.remove(path)
                deleted.append(path)
                logger.info("Removed old backup %s", backup["filename"])
            except OSError:
                # Skip files we cannot delete; do not interrupt the loop
                logger.warning("Could not remove old backup %s", path, exc_info=True)

        return deleted

    # ------------------------------------------------------------------
    # 3. Restore
    # ------------------------------------------------------------------

    def recover(self, name: str) -> bool:
        """Copy the newest snapshot of *name* over the primary document.

        Returns ``True`` when a snapshot was found and applied.  The caller
        is responsible for re-reading the document.
        """
        filename = document_filename(name)
        latest = self.latest_backup(filename)
        if latest is None:
            logger.info("No backup available for %s", filename)
            return False

        target = self.data_dir / filename
        try:
            os.makedirs(str(self.data_dir), exist_ok=True)
            tmp_target = target.with_name(f".restore_{filename}")
            shutil.copy2(latest["path"], str(tmp_target))
            os.replace(str(tmp_target), str(target))
        except OSError:
            logger.warning("Could not restore %s from %s", filename, latest["filename"], exc_info=True)
            return False

        logger.info("Restored %s from %s", filename, latest["filename"])
        return True

