"""
datastore/ -- JSON-file data layer for the tourism CMS.

Submodules:
    file_store      Validated, atomic read/write of named JSON documents.
    backup_manager  Timestamped per-document snapshots, pruning and restore.
    repository      Result-dict facade with backup recovery and defaults.
    health          Non-mutating integrity checks and recommendations.
    schemas         JSON Schemas for places, categories and users.
    models          Pydantic input models for admin edits.
    error_handler   Localised error messages and the on-disk error log.
"""

from datastore.repository import DataRepository

__all__ = ["DataRepository"]
