"""
Shared helpers for the tourism CMS data layer.

All JSON writes use atomic temp-file-then-os.replace() so that a reader in
the same process never observes a half-written document.
"""

import json
import logging
import os
import re
import tempfile
import uuid
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------

def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """Format *moment* as ISO 8601 with millisecond precision and a ``Z`` suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def ensure_utc(moment: datetime) -> datetime:
    """Attach UTC to a naive datetime; convert an aware one to UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def now_iso() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return to_iso(now_utc())


def parse_iso(value):
    """Parse an ISO 8601 timestamp, returning ``None`` for empty or bad input.

    Naive timestamps are treated as UTC.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def backup_stamp(moment: datetime | None = None) -> str:
    """Return a filesystem-safe timestamp for backup filenames.

    ``2025-01-01T10:20:30.123Z`` becomes ``2025-01-01T10-20-30-123Z``; the
    result sorts chronologically as a plain string.
    """
    return re.sub(r"[:.]", "-", to_iso(moment or now_utc()))


# ---------------------------------------------------------------------------
# Identifiers and slugs
# ---------------------------------------------------------------------------

def generate_id() -> str:
    """Generate an opaque unique record id."""
    return str(uuid.uuid4())


def slugify(text: str) -> str:
    """Convert a category name to a URL slug.

    Thai letters, latin letters and digits are kept; whitespace becomes a
    hyphen and everything else is dropped.

    Examples:
        "Night Market"   -> "night-market"
        "ร้านอาหาร ริมน้ำ" -> "ร้านอาหาร-ริมน้ำ"
        "Café & Bar!"    -> "caf-bar"
    """
    if not text or not isinstance(text, str):
        return ""
    text = text.lower()
    text = re.sub(r"[^\u0E00-\u0E7Fa-z0-9\s-]", "", text)
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"-+", "-", text).strip("-")
    return text


# ---------------------------------------------------------------------------
# Document names
# ---------------------------------------------------------------------------

def document_filename(name: str) -> str:
    """Normalise ``places`` or ``places.json`` to ``places.json``."""
    name = os.path.basename(str(name))
    return name if name.endswith(".json") else f"{name}.json"


def document_base(name: str) -> str:
    """Return the document name without its ``.json`` extension."""
    filename = document_filename(name)
    return filename[: -len(".json")]


# ---------------------------------------------------------------------------
# JSON I/O (atomic writes)
# ---------------------------------------------------------------------------

def dump_json(data, *, indent=2) -> str:
    """Serialise *data* the way every document on disk is formatted."""
    return json.dumps(data, indent=indent, ensure_ascii=False)


def safe_write_json(path, data, *, indent=2):
    """Atomically write *data* as JSON to *path*.

    Uses a temporary file in the same directory followed by
    ``os.replace()`` so that readers never see a partially-written file.
    Parent directories are created if they do not exist.

    Parameters
    ----------
    path : str or pathlib.Path
        Absolute path to the target JSON file.
    data
        JSON-serialisable object to write.
    indent : int, optional
        JSON indentation level (default 2).
    """
    path = str(path)
    parent = os.path.dirname(path)
    os.makedirs(parent, exist_ok=True)

    # Serialise before creating the temp file so a bad payload leaves no trace.
    payload = dump_json(data, indent=indent)

    fd, tmp_path = tempfile.mkstemp(dir=parent, prefix=".tmp_", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any failure.
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def append_line(path, line: str) -> None:
    """Append a single text line to *path*, creating parent directories."""
    path = str(path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "a", encoding="utf-8") as fh:
        fh.write(line if line.endswith("\n") else line + "\n")
