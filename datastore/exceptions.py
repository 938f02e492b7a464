"""Exception hierarchy for the tourism CMS data layer."""

from __future__ import annotations

import errno


class StoreError(Exception):
    """Base exception for all document store errors."""

    error_type = "StoreError"

    def __init__(self, message: str, filename: str = "") -> None:
        super().__init__(message)
        self.filename = filename


class DocumentNotFound(StoreError):
    """The document file does not exist on disk."""

    error_type = "NotFound"
    code = "ENOENT"


class DocumentParseError(StoreError):
    """The document file exists but does not contain valid JSON."""

    error_type = "ParseError"
    code = "EPARSE"

    def __init__(
        self,
        message: str,
        filename: str = "",
        lineno: int | None = None,
        colno: int | None = None,
    ) -> None:
        super().__init__(message, filename)
        self.lineno = lineno
        self.colno = colno


class DocumentValidationError(StoreError):
    """Parsed JSON content violates the document schema.

    ``position`` is the 1-based index of the offending record, or ``None``
    when the document as a whole has the wrong shape.
    """

    error_type = "ValidationError"
    code = "EVALIDATION"

    def __init__(
        self,
        message: str,
        filename: str = "",
        position: int | None = None,
        field: str = "",
    ) -> None:
        super().__init__(message, filename)
        self.position = position
        self.field = field


class StorageIOError(StoreError):
    """An operating-system level failure while touching a document.

    ``errno_name`` carries the symbolic OS error code (``EACCES``,
    ``ENOSPC``, ``EMFILE`` ...) or ``"UNKNOWN"``.
    """

    error_type = "IOError"

    def __init__(self, message: str, filename: str = "", errno_name: str = "UNKNOWN") -> None:
        super().__init__(message, filename)
        self.errno_name = errno_name

    @property
    def code(self) -> str:
        return self.errno_name


class RecoveryError(StoreError):
    """No usable backup exists for a document that was asked to be restored."""

    error_type = "RecoveryError"
    code = "ENOBACKUP"


def errno_name(exc: OSError) -> str:
    """Return the symbolic errno of *exc* (``"ENOSPC"``), or ``"UNKNOWN"``."""
    if exc.errno is None:
        return "UNKNOWN"
    return errno.errorcode.get(exc.errno, "UNKNOWN")
