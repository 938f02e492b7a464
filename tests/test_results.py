"""Tests for cms/results.py"""

import pytest

from cms.results import fail, http_status, ok, storage_failure


class TestResults:
    def test_ok_merges_payload(self):
        assert ok("done", place={"id": "p1"}) == {
            "success": True,
            "message": "done",
            "place": {"id": "p1"},
        }

    def test_fail_defaults_errors_to_message(self):
        result = fail("missing", "not_found")
        assert result["errors"] == ["missing"]
        assert result["kind"] == "not_found"

    def test_storage_failure_keeps_repository_details(self):
        repo_result = {
            "success": False,
            "error": "disk full",
            "error_type": "IOError",
            "code": "ENOSPC",
            "suggestions": ["free space"],
            "details": {"operation": "write"},
        }
        wrapped = storage_failure(repo_result)
        assert wrapped["kind"] == "storage"
        assert wrapped["code"] == "ENOSPC"
        assert wrapped["suggestions"] == ["free space"]

    @pytest.mark.parametrize("result, status", [
        (ok("x"), 200),
        (fail("x", "invalid_input"), 400),
        (fail("x", "not_found"), 404),
        (fail("x", "conflict"), 409),
        (fail("x", "storage"), 500),
        ({"success": False}, 500),
    ])
    def test_http_status(self, result, status):
        assert http_status(result) == status
