"""
datastore/schemas.py -- Declarative document schemas and the generic validator.

Every managed document is a JSON array of records.  Each document kind has
one JSON Schema in ``DOCUMENT_SCHEMAS``; ``validate_document()`` is the only
place that checks data against them, both before a write and after a read.

The schemas encode exactly the store-level invariants.  Richer rules
(phone formats, coordinates, enum values) live in the service input models
so that historical records written by older admin panels still load.

Usage::

    from datastore.schemas import validate_document

    validate_document("places.json", places)   # raises DocumentValidationError
"""

from __future__ import annotations

import logging
from typing import Any

try:
    import jsonschema
except ImportError:
    raise ImportError(
        "The 'jsonschema' package is required but not installed. "
        "Install it with: pip install jsonschema"
    )

from datastore.exceptions import DocumentValidationError
from datastore.utils import document_filename

logger = logging.getLogger(__name__)


_NON_EMPTY_STRING = {"type": "string", "minLength": 1, "pattern": r"\S"}

_LANGUAGE_MAP_WITH_THAI = {
    "type": "object",
    "required": ["th"],
    "properties": {"th": _NON_EMPTY_STRING},
}


def _array_of(record_schema: dict) -> dict:
    return {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "type": "array",
        "items": record_schema,
    }


PLACE_SCHEMA = _array_of({
    "type": "object",
    "required": ["id", "name"],
    "properties": {
        "id": _NON_EMPTY_STRING,
        "name": _LANGUAGE_MAP_WITH_THAI,
    },
})

CATEGORY_SCHEMA = _array_of({
    "type": "object",
    "required": ["id", "name"],
    "properties": {
        "id": _NON_EMPTY_STRING,
        "name": _LANGUAGE_MAP_WITH_THAI,
    },
})

USER_SCHEMA = _array_of({
    "type": "object",
    "required": ["id", "username", "password"],
    "properties": {
        "id": _NON_EMPTY_STRING,
        "username": _NON_EMPTY_STRING,
        "password": _NON_EMPTY_STRING,
    },
})

# Documents outside the registry only need to be a JSON container.
GENERIC_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": ["array", "object"],
}

DOCUMENT_SCHEMAS: dict[str, dict] = {
    "places.json": PLACE_SCHEMA,
    "categories.json": CATEGORY_SCHEMA,
    "users.json": USER_SCHEMA,
}

# Human labels used in validation messages, keyed by document filename.
_RECORD_LABELS = {
    "places.json": "Place",
    "categories.json": "Category",
    "users.json": "User",
}

_validators: dict[str, Any] = {}


def schema_for(name: str) -> dict:
    """Return the schema registered for document *name*."""
    return DOCUMENT_SCHEMAS.get(document_filename(name), GENERIC_SCHEMA)


def _validator_for(name: str):
    filename = document_filename(name)
    key = filename if filename in DOCUMENT_SCHEMAS else "*"
    validator = _validators.get(key)
    if validator is None:
        schema = schema_for(filename)
        validator_cls = jsonschema.Draft202012Validator
        validator_cls.check_schema(schema)
        validator = validator_cls(schema)
        _validators[key] = validator
    return validator


def iter_document_errors(name: str, data: Any) -> list[DocumentValidationError]:
    """Return every schema violation in *data* as ``DocumentValidationError``s.

    Errors are ordered by record position so the first entry is the first
    offending record.
    """
    filename = document_filename(name)
    validator = _validator_for(filename)
    errors = [
        _to_store_error(err, filename)
        for err in validator.iter_errors(data)
    ]
    errors.sort(key=lambda e: (e.position or 0, e.field))
    return errors


def validate_document(name: str, data: Any) -> None:
    """Validate *data* against the schema of document *name*.

    Raises
    ------
    DocumentValidationError
        For the first offending record, carrying its 1-based position.
    """
    errors = iter_document_errors(name, data)
    if errors:
        raise errors[0]


def is_valid_document(name: str, data: Any) -> bool:
    return not iter_document_errors(name, data)


# ------------------------------------------------------------------
# Error humanization
# ------------------------------------------------------------------

def _to_store_error(error, filename: str) -> DocumentValidationError:
    """Convert a ``jsonschema.ValidationError`` into a store error."""
    path = list(error.absolute_path)
    position = None
    if path and isinstance(path[0], int):
        position = path[0] + 1
        path = path[1:]

    # "required" errors point at the parent; name the missing key instead.
    if error.validator == "required" and isinstance(error.instance, dict):
        missing = [key for key in error.validator_value if key not in error.instance]
        if missing:
            path = path + [missing[0]]

    field = ".".join(str(p) for p in path)
    message = _humanize(error, filename, position, field)
    return DocumentValidationError(message, filename=filename, position=position, field=field)


def _humanize(error, filename: str, position: int | None, field: str) -> str:
    label = _RECORD_LABELS.get(filename, "Record")

    if position is None:
        if error.validator == "type":
            return f"Document {filename} must be a JSON {_expected_type(error)}."
        return f"Document {filename} is not valid: {error.message}"

    where = f"{label} #{position}"
    if field == "name.th":
        return f"{where} must have a Thai name (name.th is required and must be non-empty)."
    if field == "name":
        if error.validator == "type":
            return f"{where} must have a name object with a Thai name (name.th)."
        return f"{where} must have a Thai name (name.th is required and must be non-empty)."
    if field:
        return f"{where} must have {field} as a non-empty string."
    if error.validator == "type":
        return f"{where} must be an object."
    return f"{where} is not valid: {error.message}"


def _expected_type(error) -> str:
    expected = error.validator_value
    if isinstance(expected, list):
        return " or ".join(expected)
    return str(expected)
