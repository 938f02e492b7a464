"""
datastore/health.py -- Non-mutating integrity checks for managed documents.

``check_file_integrity()`` re-verifies a single document stage by stage
(existence, readability, JSON syntax, schema) and records the error of each
stage that fails.  ``system_health_check()`` runs it over every managed
document, counts available backups, and produces remediation
recommendations.  Report text follows the reporter's language (``th`` or
``en``).

Nothing in this module writes to disk.

Usage:
    from datastore.health import HealthReporter

    reporter = HealthReporter("/srv/tourism-cms/data", language="en")
    report = reporter.system_health_check()
    print(reporter.format_for_user(report))
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from datastore.backup_manager import BackupRotator
from datastore.error_handler import SUPPORTED_LANGUAGES
from datastore.exceptions import DocumentValidationError
from datastore.schemas import validate_document
from datastore.utils import document_filename, now_iso, to_iso

logger = logging.getLogger(__name__)

MANAGED_DOCUMENTS = ("places.json", "categories.json", "users.json")

_TEXT = {
    # per-file errors
    "missing": {
        "th": "ไม่พบไฟล์: {filename}",
        "en": "File does not exist: {filename}",
    },
    "stat_failed": {
        "th": "ไม่สามารถตรวจสอบไฟล์ {filename}: {detail}",
        "en": "Could not stat {filename}: {detail}",
    },
    "encoding": {
        "th": "การเข้ารหัสไม่ถูกต้อง (ไม่ใช่ UTF-8): {filename}",
        "en": "Encoding error (not valid UTF-8): {filename}",
    },
    "unreadable": {
        "th": "ไม่สามารถอ่านไฟล์ได้: {detail}",
        "en": "File is not readable: {detail}",
    },
    "invalid_json": {
        "th": "JSON ไม่ถูกต้อง: {detail}",
        "en": "Invalid JSON: {detail}",
    },
    "json_position": {
        "th": "{msg} ที่บรรทัด {lineno} คอลัมน์ {colno}",
        "en": "{msg} at line {lineno}, column {colno}",
    },
    "invalid_structure": {
        "th": "โครงสร้างข้อมูลไม่ถูกต้อง: {detail}",
        "en": "Invalid structure: {detail}",
    },
    # recommendations
    "rec_missing": {
        "th": "สร้างไฟล์ {filename} ระบบจะใส่ข้อมูลเริ่มต้นให้เมื่ออ่านครั้งถัดไป",
        "en": "Create {filename}; it will be seeded with default data on next read.",
    },
    "rec_invalid_json": {
        "th": "ตรวจสอบไฟล์ {filename}: มีรูปแบบ JSON ที่ไม่ถูกต้อง ควรกู้คืนจากไฟล์สำรอง",
        "en": "Inspect {filename}: it contains invalid JSON. Recover it from a backup.",
    },
    "rec_invalid_structure": {
        "th": "ตรวจสอบไฟล์ {filename}: บางรายการขาดข้อมูลที่จำเป็น",
        "en": "Inspect {filename}: some records are missing required fields.",
    },
    "rec_backup_dir": {
        "th": "สร้างโฟลเดอร์สำรองข้อมูล (data/backups)",
        "en": "Create a backup directory (data/backups).",
    },
    "rec_no_backups": {
        "th": "ยังไม่มีไฟล์สำรอง ระบบจะสร้างให้อัตโนมัติเมื่อบันทึกครั้งถัดไป",
        "en": "Create a backup: none exist yet. One is made automatically on the next save.",
    },
    # text report
    "overall": {"th": "สถานะโดยรวม: {status}", "en": "Overall status: {status}"},
    "checked_at": {"th": "ตรวจสอบเมื่อ: {timestamp}", "en": "Checked at: {timestamp}"},
    "flag_ok": {"th": "ปกติ", "en": "OK"},
    "flag_problem": {"th": "มีปัญหา", "en": "PROBLEM"},
    "file_line": {
        "th": "  [{flag}] {filename} ({size} ไบต์)",
        "en": "  [{flag}] {filename} ({size} bytes)",
    },
    "backups_available": {
        "th": "จำนวนไฟล์สำรอง: {count}",
        "en": "Backups available: {count}",
    },
    "recommendations": {"th": "คำแนะนำ:", "en": "Recommendations:"},
}

_STATUS_LABELS = {
    "healthy": {"th": "ปกติ", "en": "HEALTHY"},
    "warning": {"th": "มีคำเตือน", "en": "WARNING"},
}


class HealthReporter:
    """Diagnoses the documents in *data_dir*.

    Parameters
    ----------
    data_dir : str or pathlib.Path
        Directory holding the managed JSON documents.
    rotator : BackupRotator, optional
        Used to count backups; one rooted at *data_dir* is created if omitted.
    language : str
        Language of report text, ``"th"`` (default) or ``"en"``.
    """

    def __init__(self, data_dir, rotator: BackupRotator | None = None, language: str = "th"):
        self.data_dir = Path(data_dir).resolve()
        self.rotator = rotator or BackupRotator(self.data_dir)
        self.language = language if language in SUPPORTED_LANGUAGES else "th"

    def _text(self, key: str, **fields) -> str:
        return _TEXT[key][self.language].format(**fields)

    # ------------------------------------------------------------------
    # Single document
    # ------------------------------------------------------------------

    def check_file_integrity(self, name: str) -> dict:
        """Verify one document without modifying it.

        Returns
        -------
        dict
            ``filename``, ``exists``, ``readable``, ``validJSON``,
            ``validStructure``, ``size``, ``lastModified`` (ISO string or
            ``None``), and ``errors`` (one message per failed stage).
        """
        filename = document_filename(name)
        path = self.data_dir / filename
        result = {
            "filename": filename,
            "exists": False,
            "readable": False,
            "validJSON": False,
            "validStructure": False,
            "size": 0,
            "lastModified": None,
            "errors": [],
        }

        # Stage 1: existence
        try:
            stats = os.stat(str(path))
        except FileNotFoundError:
            result["errors"].append(self._text("missing", filename=filename))
            return result
        except OSError as exc:
            result["errors"].append(
                self._text("stat_failed", filename=filename, detail=exc.strerror or exc)
            )
            return result

        result["exists"] = True
        result["size"] = stats.st_size
        result["lastModified"] = to_iso(
            datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc)
        )

        # Stage 2: readability
        try:
            with open(str(path), "r", encoding="utf-8") as fh:
                text = fh.read()
            result["readable"] = True
        except UnicodeDecodeError:
            result["errors"].append(self._text("encoding", filename=filename))
            return result
        except OSError as exc:
            result["errors"].append(self._text("unreadable", detail=exc.strerror or exc))
            return result

        # Stage 3: JSON syntax.  An empty file reads as an empty collection.
        if not text.strip():
            data = []
            result["validJSON"] = True
        else:
            try:
                data = json.loads(text)
                result["validJSON"] = True
            except json.JSONDecodeError as exc:
                detail = self._text(
                    "json_position", msg=exc.msg, lineno=exc.lineno, colno=exc.colno
                )
                result["errors"].append(self._text("invalid_json", detail=detail))
                return result
            except (RecursionError, ValueError) as exc:
                result["errors"].append(self._text("invalid_json", detail=exc))
                return result

        # Stage 4: schema
        try:
            validate_document(filename, data)
            result["validStructure"] = True
        except DocumentValidationError as exc:
            result["errors"].append(self._text("invalid_structure", detail=exc))

        return result

    # ------------------------------------------------------------------
    # Whole system
    # ------------------------------------------------------------------

    def system_health_check(self) -> dict:
        """Check every managed document and the backup directory.

        Returns
        -------
        dict
            ``timestamp``, ``overall`` (``"healthy"`` or ``"warning"``),
            ``files`` (filename -> integrity report), ``backups``
            (``available``, ``count``, ``directoryExists``), and
            ``recommendations``.
        """
        report = {
            "timestamp": now_iso(),
            "overall": "healthy",
            "files": {},
            "backups": {
                "available": False,
                "count": 0,
                "directoryExists": self.rotator.backups_dir.is_dir(),
            },
            "recommendations": [],
        }

        for filename in MANAGED_DOCUMENTS:
            file_report = self.check_file_integrity(filename)
            report["files"][filename] = file_report
            if not file_report["validStructure"]:
                report["overall"] = "warning"

        count = self.rotator.count()
        report["backups"]["count"] = count
        report["backups"]["available"] = count > 0

        report["recommendations"] = self._generate_recommendations(report)
        if report["overall"] != "healthy":
            logger.warning("Health check found problems: %s", report["recommendations"])
        return report

    def _generate_recommendations(self, report: dict) -> list:
        """Generate actionable recommendations based on health check results."""
        recommendations = []

        for filename, file_report in report["files"].items():
            if not file_report["exists"]:
                recommendations.append(self._text("rec_missing", filename=filename))
            elif not file_report["validJSON"]:
                recommendations.append(self._text("rec_invalid_json", filename=filename))
            elif not file_report["validStructure"]:
                recommendations.append(self._text("rec_invalid_structure", filename=filename))

        backups = report["backups"]
        if not backups["directoryExists"]:
            recommendations.append(self._text("rec_backup_dir"))
        if backups["count"] == 0:
            recommendations.append(self._text("rec_no_backups"))

        return recommendations

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def format_for_user(self, report: dict) -> str:
        """Render a health report as plain text for the command line."""
        overall = report["overall"]
        status = _STATUS_LABELS.get(overall, {}).get(self.language, overall.upper())
        lines = [
            self._text("overall", status=status),
            self._text("checked_at", timestamp=report["timestamp"]),
            "",
        ]
        for filename, info in report["files"].items():
            flag = self._text("flag_ok" if info["validStructure"] else "flag_problem")
            lines.append(self._text("file_line", flag=flag, filename=filename, size=info["size"]))
            for err in info["errors"]:
                lines.append(f"      - {err}")
        lines.append("")
        lines.append(self._text("backups_available", count=report["backups"]["count"]))
        if report["recommendations"]:
            lines.append("")
            lines.append(self._text("recommendations"))
            for i, rec in enumerate(report["recommendations"], 1):
                lines.append(f"  {i}. {rec}")
        return "\n".join(lines)
