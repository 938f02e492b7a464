"""
Tests for datastore/schemas.py

Covers:
    - Minimal record invariants per document kind
    - Position and field reporting for the first offending record
    - Generic documents outside the registry
"""

import pytest

from datastore.exceptions import DocumentValidationError
from datastore.schemas import is_valid_document, iter_document_errors, validate_document


class TestPlacesAndCategories:
    @pytest.mark.parametrize("name", ["places.json", "categories"])
    def test_minimal_record_is_valid(self, name):
        validate_document(name, [{"id": "x", "name": {"th": "ชื่อ"}}])

    def test_extra_fields_are_allowed(self, sample_place):
        assert is_valid_document("places", [dict(sample_place, legacyField=1)])

    def test_missing_thai_name(self):
        with pytest.raises(DocumentValidationError) as info:
            validate_document("places", [{"id": "a", "name": {"th": "ก"}}, {"id": "b", "name": {}}])
        assert info.value.position == 2
        assert info.value.field == "name.th"
        assert str(info.value).startswith("Place #2 must have a Thai name")

    def test_whitespace_thai_name(self):
        with pytest.raises(DocumentValidationError) as info:
            validate_document("categories", [{"id": "c", "name": {"th": "   "}}])
        assert info.value.field == "name.th"

    def test_name_must_be_object(self):
        with pytest.raises(DocumentValidationError) as info:
            validate_document("places", [{"id": "a", "name": "ชื่อ"}])
        assert "name object" in str(info.value)

    def test_empty_id(self):
        with pytest.raises(DocumentValidationError) as info:
            validate_document("categories", [{"id": "", "name": {"th": "ก"}}])
        assert info.value.field == "id"
        assert str(info.value) == "Category #1 must have id as a non-empty string."

    def test_record_must_be_object(self):
        with pytest.raises(DocumentValidationError) as info:
            validate_document("places", ["not a record"])
        assert str(info.value) == "Place #1 must be an object."

    def test_document_must_be_array(self):
        with pytest.raises(DocumentValidationError) as info:
            validate_document("places", {"id": "a"})
        assert info.value.position is None
        assert str(info.value) == "Document places.json must be a JSON array."

    def test_errors_are_ordered_by_position(self):
        errors = iter_document_errors("places", [
            {"id": "a", "name": {"th": "ก"}},
            {"id": "", "name": {"th": "ข"}},
            {"name": {"th": "ค"}},
        ])
        assert errors[0].position == 2
        assert errors[-1].position == 3


class TestUsers:
    def test_valid_user(self):
        validate_document("users", [{"id": "u", "username": "admin", "password": "$2b$10$x"}])

    def test_missing_password(self):
        with pytest.raises(DocumentValidationError) as info:
            validate_document("users", [{"id": "u", "username": "admin"}])
        assert info.value.field == "password"


class TestGenericDocuments:
    def test_any_container_is_accepted(self):
        assert is_valid_document("settings.json", {"a": 1})
        assert is_valid_document("settings.json", [1, 2])

    def test_scalar_is_rejected(self):
        with pytest.raises(DocumentValidationError) as info:
            validate_document("settings.json", "text")
        assert str(info.value) == "Document settings.json must be a JSON array or object."
