"""
datastore/error_handler.py -- Error translation and the on-disk error log.

Turns any exception raised by the store into the uniform failure result
used across the repository boundary::

    {
        "success": False,
        "error": "<localised, user-facing message>",
        "error_type": "ParseError",
        "code": "EPARSE",
        "suggestions": ["...", "..."],
        "details": {...},
    }

Every handled error is appended to ``<data_dir>/logs/error.log`` as one line:
``timestamp [ErrorType] operation - filename: message``.

Messages are available in Thai (``th``, the admin panel default) and
English (``en``).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from datastore.exceptions import (
    DocumentNotFound,
    DocumentParseError,
    DocumentValidationError,
    RecoveryError,
    StorageIOError,
    StoreError,
    errno_name,
)
from datastore.utils import append_line, now_iso

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("th", "en")

# Operation labels, keyed by the operation ids used in the codebase.
OPERATIONS = {
    "read": {"th": "อ่าน", "en": "read"},
    "write": {"th": "เขียน", "en": "write"},
    "recover": {"th": "กู้คืน", "en": "recover"},
    "check": {"th": "ตรวจสอบ", "en": "check"},
    "create_default": {"th": "สร้างไฟล์เริ่มต้น", "en": "create default"},
    "health_check": {"th": "ตรวจสอบสุขภาพระบบ", "en": "health check"},
}

MESSAGES = {
    "not_found": {
        "th": "ไม่พบไฟล์ {filename} ระบบจะสร้างไฟล์ใหม่ให้อัตโนมัติ",
        "en": "File {filename} was not found. A new file will be created automatically.",
    },
    "access_denied": {
        "th": "ไม่มีสิทธิ์เข้าถึงไฟล์ {filename} กรุณาตรวจสอบสิทธิ์การเข้าถึงไฟล์",
        "en": "Permission denied for {filename}. Please check the file permissions.",
    },
    "too_many_files": {
        "th": "ระบบเปิดไฟล์ได้เกินขีดจำกัด กรุณาลองใหม่อีกครั้ง",
        "en": "Too many files are open. Please try again.",
    },
    "disk_full": {
        "th": "พื้นที่จัดเก็บข้อมูลเต็ม ไม่สามารถบันทึกไฟล์ {filename} ได้",
        "en": "The disk is full. {filename} could not be saved.",
    },
    "parse": {
        "th": "ไฟล์ {filename} มีรูปแบบ JSON ที่ไม่ถูกต้อง: {detail}",
        "en": "File {filename} contains invalid JSON: {detail}",
    },
    "validation": {
        "th": "ข้อมูลในไฟล์ {filename} ไม่ถูกต้องตามรูปแบบที่กำหนด: {detail}",
        "en": "The data in {filename} does not match the required format: {detail}",
    },
    "generic": {
        "th": "เกิดข้อผิดพลาดในการ{operation}ไฟล์ {filename}: {detail}",
        "en": "An error occurred while trying to {operation} {filename}: {detail}",
    },
    "no_backup": {
        "th": "ไม่สามารถกู้คืนไฟล์ {filename} ได้ (ไม่พบไฟล์สำรอง)",
        "en": "Could not recover {filename} (no backup found).",
    },
}

SUGGESTIONS = {
    "not_found": {
        "th": ["ระบบจะสร้างไฟล์ใหม่ให้อัตโนมัติ", "ตรวจสอบว่าโฟลเดอร์ data มีอยู่หรือไม่"],
        "en": [
            "A new file will be created automatically.",
            "Check that the data directory exists.",
        ],
    },
    "access_denied": {
        "th": ["ตรวจสอบสิทธิ์การเข้าถึงไฟล์และโฟลเดอร์", "รันโปรแกรมด้วยสิทธิ์ที่เหมาะสม"],
        "en": [
            "Check the permissions of the file and its directory.",
            "Run the program as a user with sufficient permissions.",
        ],
    },
    "too_many_files": {
        "th": ["ลองดำเนินการใหม่อีกครั้ง", "ปิดโปรแกรมอื่นที่เปิดไฟล์จำนวนมาก"],
        "en": [
            "Try the operation again.",
            "Close other programs that keep many files open.",
        ],
    },
    "disk_full": {
        "th": ["ลบไฟล์ที่ไม่จำเป็นเพื่อเพิ่มพื้นที่", "ตรวจสอบพื้นที่ว่างในระบบ"],
        "en": ["Free up space by deleting unneeded files.", "Check the available disk space."],
    },
    "parse": {
        "th": [
            "ตรวจสอบรูปแบบ JSON ในไฟล์",
            "ใช้เครื่องมือตรวจสอบ JSON เช่น JSONLint",
            "กู้คืนจากไฟล์สำรอง",
        ],
        "en": [
            "Check the JSON syntax of the file.",
            "Use a JSON checker such as JSONLint.",
            "Recover the file from a backup.",
        ],
    },
    "validation": {
        "th": [
            "ตรวจสอบว่าทุกรายการมี id และชื่อภาษาไทย",
            "แก้ไขข้อมูลให้ตรงตามรูปแบบแล้วบันทึกใหม่",
        ],
        "en": [
            "Make sure every record has an id and a Thai name.",
            "Correct the data and save again.",
        ],
    },
    "generic": {
        "th": ["ลองดำเนินการใหม่อีกครั้ง", "ตรวจสอบไฟล์ log สำหรับรายละเอียดเพิ่มเติม"],
        "en": ["Try the operation again.", "Check the error log for details."],
    },
    "no_backup": {
        "th": ["สร้างไฟล์เริ่มต้นแทนการกู้คืน", "ตรวจสอบโฟลเดอร์ data/backups"],
        "en": [
            "Create the default file instead of recovering it.",
            "Check the data/backups directory.",
        ],
    },
}


def classify(exc: BaseException) -> str:
    """Map an exception to a message/suggestion catalogue key."""
    code = _code_of(exc)
    if isinstance(exc, DocumentNotFound) or code == "ENOENT":
        return "not_found"
    if code in ("EACCES", "EPERM"):
        return "access_denied"
    if code in ("EMFILE", "ENFILE"):
        return "too_many_files"
    if code == "ENOSPC":
        return "disk_full"
    if isinstance(exc, DocumentParseError):
        return "parse"
    if isinstance(exc, DocumentValidationError):
        return "validation"
    if isinstance(exc, RecoveryError):
        return "no_backup"
    return "generic"


def _code_of(exc: BaseException) -> str:
    if isinstance(exc, StoreError):
        return getattr(exc, "code", "UNKNOWN")
    if isinstance(exc, OSError):
        return errno_name(exc)
    return "UNKNOWN"


def _error_type_of(exc: BaseException) -> str:
    if isinstance(exc, StoreError):
        return exc.error_type
    if isinstance(exc, OSError):
        return "IOError"
    return type(exc).__name__


class ErrorHandler:
    """Translates, logs, and formats store errors.

    Parameters
    ----------
    data_dir : str or pathlib.Path
        Data directory; the error log lives in ``<data_dir>/logs/error.log``.
    language : str
        ``"th"`` (default) or ``"en"``.
    """

    def __init__(self, data_dir, language: str = "th"):
        self.data_dir = Path(data_dir).resolve()
        self.log_path = self.data_dir / "logs" / "error.log"
        self.language = language if language in SUPPORTED_LANGUAGES else "th"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def handle_error(self, exc: BaseException, operation: str, filename: str = "") -> dict[str, Any]:
        """Log *exc* and return the uniform failure result."""
        details = {
            "timestamp": now_iso(),
            "operation": operation,
            "filename": filename,
            "errorType": _error_type_of(exc),
            "message": str(exc),
            "code": _code_of(exc),
        }
        if isinstance(exc, DocumentValidationError):
            details["position"] = exc.position
            details["field"] = exc.field

        self.log_error(details)

        return {
            "success": False,
            "error": self.user_message(exc, operation, filename),
            "error_type": details["errorType"],
            "code": details["code"],
            "suggestions": self.suggestions(exc),
            "details": details,
        }

    def user_message(self, exc: BaseException, operation: str, filename: str = "") -> str:
        key = classify(exc)
        template = MESSAGES[key][self.language]
        op_label = OPERATIONS.get(operation, {}).get(self.language, operation)
        return template.format(filename=filename, operation=op_label, detail=str(exc))

    def suggestions(self, exc: BaseException) -> list[str]:
        return list(SUGGESTIONS[classify(exc)][self.language])

    def log_error(self, details: dict[str, Any]) -> None:
        """Append one line to the error log.  Never raises."""
        line = (
            f"{details['timestamp']} [{details['errorType']}] "
            f"{details['operation']} - {details['filename']}: {details['message']}"
        )
        logger.error(line)
        try:
            append_line(self.log_path, line)
        except OSError:
            logger.warning("Could not write to error log %s", self.log_path, exc_info=True)
