"""
Tests for cms/categories.py

Covers:
    - Listing with computed placesCount (never persisted)
    - Create / update validation, duplicate names, slug and order
    - Delete detaches places instead of removing them
    - Statistics
"""

import json

import pytest

from cms.categories import CategoryService, count_places


@pytest.fixture
def service(seeded_repo):
    return CategoryService(seeded_repo)


def _stored_categories(data_dir):
    return json.loads((data_dir / "categories.json").read_text(encoding="utf-8"))


def _stored_places(data_dir):
    return json.loads((data_dir / "places.json").read_text(encoding="utf-8"))


class TestList:
    def test_sorted_by_order_with_counts(self, service):
        result = service.list_categories()
        assert result["success"] is True
        categories = result["categories"]
        assert [c["id"] for c in categories] == ["restaurant", "accommodation", "attraction"]
        counts = {c["id"]: c["placesCount"] for c in categories}
        assert counts == {"restaurant": 1, "accommodation": 0, "attraction": 2}

    def test_counts_are_not_persisted(self, service, data_dir):
        service.list_categories()
        service.create_category({"name": {"th": "คาเฟ่"}, "icon": "coffee"})
        assert all("placesCount" not in c for c in _stored_categories(data_dir))

    def test_get_category(self, service):
        result = service.get_category("attraction")
        assert result["category"]["placesCount"] == 2

    def test_get_unknown_category(self, service):
        result = service.get_category("nope")
        assert result["success"] is False
        assert result["kind"] == "not_found"

    def test_get_by_slug(self, service):
        assert service.get_by_slug("restaurant")["category"]["id"] == "restaurant"
        assert service.get_by_slug("missing")["kind"] == "not_found"

    def test_count_places_by_status(self, seeded_repo):
        places = seeded_repo.get_places()["data"]
        assert count_places(places, "restaurant") == 1
        assert count_places(places, "restaurant", status="published") == 0


class TestCreate:
    def test_create(self, service, data_dir):
        result = service.create_category({"name": {"th": "ตลาด ริมน้ำ", "en": "Riverside Market"}, "icon": "store"})
        assert result["success"] is True
        category = result["category"]
        assert category["slug"] == "ตลาด-ริมน้ำ"
        assert category["order"] == 4
        assert category["name"]["en"] == "Riverside Market"
        assert category["createdAt"].endswith("Z")
        assert _stored_categories(data_dir)[-1]["id"] == category["id"]

    def test_explicit_order(self, service):
        result = service.create_category({"name": {"th": "สปา"}, "icon": "spa", "order": "2"})
        assert result["category"]["order"] == 2

    def test_duplicate_thai_name_is_conflict(self, service, data_dir):
        before = _stored_categories(data_dir)
        result = service.create_category({"name": {"th": " ร้านอาหาร "}, "icon": "x"})
        assert result["success"] is False
        assert result["kind"] == "conflict"
        assert result["error"] == "A category with this name already exists."
        assert _stored_categories(data_dir) == before

    def test_failed_detach_leaves_category_removed(self, service, seeded_repo, data_dir, monkeypatch):
        places_before = _stored_places(data_dir)
        monkeypatch.setattr(
            seeded_repo,
            "save_places",
            lambda places: {"success": False, "error": "disk full", "code": "ENOSPC"},
        )

        result = service.delete_category("attraction")

        assert result["kind"] == "storage"
        assert result["code"] == "ENOSPC"
        assert [c["id"] for c in _stored_categories(data_dir)] == ["restaurant", "accommodation"]
        assert _stored_places(data_dir) == places_before

    def test_failed_category_save_leaves_places_untouched(self, service, seeded_repo, data_dir, monkeypatch):
        places_before = _stored_places(data_dir)
        monkeypatch.setattr(
            seeded_repo,
            "save_categories",
            lambda categories: {"success": False, "error": "disk full", "code": "ENOSPC"},
        )

        result = service.delete_category("attraction")

        assert result["kind"] == "storage"
        assert [c["id"] for c in _stored_categories(data_dir)] == [
            "restaurant", "accommodation", "attraction",
        ]
        assert _stored_places(data_dir) == places_before

    def test_invalid_input(self, service):
        result = service.create_category({"name": {"en": "No Thai"}})
        assert result["kind"] == "invalid_input"
        assert result["errors"] == ["กรุณากรอกชื่อหมวดหมู่ภาษาไทย", "กรุณาเลือกไอคอน"]


class TestUpdate:
    def test_update_keeps_order_and_created_at(self, service, data_dir):
        original = next(c for c in _stored_categories(data_dir) if c["id"] == "restaurant")
        result = service.update_category("restaurant", {"name": {"th": "ร้านอาหารและเครื่องดื่ม"}, "icon": "utensils"})
        updated = result["category"]
        assert updated["order"] == 1
        assert updated["createdAt"] == original["createdAt"]
        assert updated["slug"] == "ร้านอาหารและเครื่องดื่ม"
        assert "updatedAt" in updated

    def test_renaming_to_own_name_is_allowed(self, service):
        result = service.update_category("restaurant", {"name": {"th": "ร้านอาหาร"}, "icon": "bowl"})
        assert result["success"] is True

    def test_renaming_to_other_name_is_conflict(self, service):
        result = service.update_category("restaurant", {"name": {"th": "ที่พัก"}, "icon": "bowl"})
        assert result["kind"] == "conflict"

    def test_update_unknown(self, service):
        result = service.update_category("nope", {"name": {"th": "ก"}, "icon": "x"})
        assert result["kind"] == "not_found"


class TestDelete:
    def test_delete_detaches_places(self, service, data_dir):
        result = service.delete_category("attraction")

        assert result["success"] is True
        assert result["deletedId"] == "attraction"
        assert result["detachedPlaces"] == 2
        assert [c["id"] for c in _stored_categories(data_dir)] == ["restaurant", "accommodation"]

        places = {p["id"]: p for p in _stored_places(data_dir)}
        assert len(places) == 3
        assert places["doi-suthep-0001"]["category"] is None
        assert places["night-bazaar-0002"]["category"] is None
        assert places["doi-suthep-0001"]["updatedAt"] != "2025-01-01T00:00:00.000Z"
        assert places["hidden-cafe-0003"]["category"] == "restaurant"

    def test_delete_without_places(self, service):
        result = service.delete_category("accommodation")
        assert result["detachedPlaces"] == 0
        assert result["message"] == 'Category "ที่พัก" deleted.'

    def test_delete_unknown(self, service, data_dir):
        before = _stored_categories(data_dir)
        assert service.delete_category("nope")["kind"] == "not_found"
        assert _stored_categories(data_dir) == before


class TestStats:
    def test_stats(self, service):
        stats = service.stats()["stats"]
        assert stats == {
            "totalCategories": 3,
            "categoriesWithPlaces": 2,
            "totalPlacesInCategories": 3,
        }
