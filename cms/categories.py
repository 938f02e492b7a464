"""
cms/categories.py -- Category management for the admin panel.

``placesCount`` is never stored.  It is computed on every read by counting
the places whose ``category`` equals the category id, and stripped from any
record before it is written back.

Deleting a category does not delete its places: each of them gets
``category: None`` and a fresh ``updatedAt`` so the admin can reassign it.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from cms.results import fail, ok, storage_failure
from datastore.models import CategoryInput, validation_messages
from datastore.utils import generate_id, now_iso, slugify

logger = logging.getLogger(__name__)

_MESSAGES = {
    "loaded": {"th": "โหลดข้อมูลสำเร็จ", "en": "Loaded successfully."},
    "created": {"th": "เพิ่มหมวดหมู่สำเร็จ", "en": "Category created."},
    "updated": {"th": "อัปเดตข้อมูลสำเร็จ", "en": "Category updated."},
    "deleted": {"th": 'ลบหมวดหมู่ "{name}" สำเร็จ', "en": 'Category "{name}" deleted.'},
    "not_found": {"th": "ไม่พบหมวดหมู่ที่ระบุ", "en": "Category not found."},
    "duplicate": {
        "th": "ชื่อหมวดหมู่นี้มีอยู่แล้ว กรุณาใช้ชื่ออื่น",
        "en": "A category with this name already exists.",
    },
    "stats_loaded": {"th": "โหลดสถิติหมวดหมู่สำเร็จ", "en": "Category statistics loaded."},
}


def _thai_key(category: dict) -> str:
    name = category.get("name") or {}
    return str(name.get("th") or "").strip().lower()


def _order_key(category: dict):
    order = category.get("order")
    return order if isinstance(order, (int, float)) and not isinstance(order, bool) else 0


def count_places(places: list, category_id: str, status: str | None = None) -> int:
    """Count places in *category_id*, optionally only those with *status*."""
    return sum(
        1 for place in places
        if place.get("category") == category_id
        and (status is None or place.get("status") == status)
    )


def strip_computed(category: dict) -> dict:
    record = dict(category)
    record.pop("placesCount", None)
    return record


class CategoryService:
    """CRUD and statistics over ``categories.json``.

    Parameters
    ----------
    repository : datastore.repository.DataRepository
    """

    def __init__(self, repository):
        self.repository = repository

    def _msg(self, key: str, **fields) -> str:
        lang = getattr(self.repository, "language", "th")
        return _MESSAGES[key].get(lang, _MESSAGES[key]["th"]).format(**fields)

    def _places_for_counting(self) -> list:
        loaded = self.repository.get_places()
        if not loaded["success"]:
            logger.warning("Could not load places for counting: %s", loaded.get("error"))
            return []
        return loaded["data"]

    def _with_counts(self, categories: list, places: list | None = None) -> list:
        if places is None:
            places = self._places_for_counting()
        return [
            {**category, "placesCount": count_places(places, category.get("id"))}
            for category in categories
        ]

    @staticmethod
    def _is_duplicate(categories: list, thai_name: str, exclude_id: str | None = None) -> bool:
        key = thai_name.strip().lower()
        return any(
            _thai_key(category) == key
            for category in categories
            if category.get("id") != exclude_id
        )

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_categories(self) -> dict[str, Any]:
        """All categories sorted by ``order``, each with ``placesCount``."""
        loaded = self.repository.get_categories()
        if not loaded["success"]:
            return storage_failure(loaded)
        categories = sorted(loaded["data"], key=_order_key)
        return ok(self._msg("loaded"), categories=self._with_counts(categories))

    def get_category(self, category_id: str) -> dict[str, Any]:
        loaded = self.repository.get_categories()
        if not loaded["success"]:
            return storage_failure(loaded)
        category = next((c for c in loaded["data"] if c.get("id") == category_id), None)
        if category is None:
            return fail(self._msg("not_found"), "not_found")
        return ok(self._msg("loaded"), category=self._with_counts([category])[0])

    def get_by_slug(self, slug: str) -> dict[str, Any]:
        loaded = self.repository.get_categories()
        if not loaded["success"]:
            return storage_failure(loaded)
        category = next((c for c in loaded["data"] if c.get("slug") == slug), None)
        if category is None:
            return fail(self._msg("not_found"), "not_found")
        return ok(self._msg("loaded"), category=self._with_counts([category])[0])

    def stats(self) -> dict[str, Any]:
        """Dashboard numbers: totals and how many categories are in use."""
        loaded = self.repository.get_categories()
        if not loaded["success"]:
            return storage_failure(loaded)
        categories = self._with_counts(sorted(loaded["data"], key=_order_key))
        stats = {
            "totalCategories": len(categories),
            "categoriesWithPlaces": sum(1 for c in categories if c["placesCount"] > 0),
            "totalPlacesInCategories": sum(c["placesCount"] for c in categories),
        }
        return ok(self._msg("stats_loaded"), stats=stats, categories=categories)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def create_category(self, data: dict) -> dict[str, Any]:
        """Validate *data* and append a new category.

        ``order`` defaults to one past the current number of categories.
        """
        try:
            payload = CategoryInput.model_validate(data)
        except ValidationError as exc:
            errors = validation_messages(exc)
            return fail(", ".join(errors), "invalid_input", errors)

        loaded = self.repository.get_categories()
        if not loaded["success"]:
            return storage_failure(loaded)
        categories = [strip_computed(c) for c in loaded["data"]]

        if self._is_duplicate(categories, payload.name.th):
            return fail(self._msg("duplicate"), "conflict")

        category = {
            "id": generate_id(),
            "name": payload.name.model_dump(),
            "slug": slugify(payload.name.th),
            "icon": payload.icon,
            "order": payload.order if payload.order is not None else len(categories) + 1,
            "createdAt": now_iso(),
        }
        categories.append(category)

        saved = self.repository.save_categories(categories)
        if not saved["success"]:
            return storage_failure(saved)

        logger.info("Created category %s (%s)", category["id"], category["slug"])
        return ok(self._msg("created"), category=category)

    def update_category(self, category_id: str, data: dict) -> dict[str, Any]:
        try:
            payload = CategoryInput.model_validate(data)
        except ValidationError as exc:
            errors = validation_messages(exc)
            return fail(", ".join(errors), "invalid_input", errors)

        loaded = self.repository.get_categories()
        if not loaded["success"]:
            return storage_failure(loaded)
        categories = [strip_computed(c) for c in loaded["data"]]

        index = next((i for i, c in enumerate(categories) if c.get("id") == category_id), None)
        if index is None:
            return fail(self._msg("not_found"), "not_found")
        if self._is_duplicate(categories, payload.name.th, exclude_id=category_id):
            return fail(self._msg("duplicate"), "conflict")

        existing = categories[index]
        updated = {
            **existing,
            "name": payload.name.model_dump(),
            "slug": slugify(payload.name.th),
            "icon": payload.icon,
            "order": payload.order if payload.order is not None else existing.get("order"),
            "updatedAt": now_iso(),
        }
        categories[index] = updated

        saved = self.repository.save_categories(categories)
        if not saved["success"]:
            return storage_failure(saved)
        return ok(self._msg("updated"), category=updated)

    def delete_category(self, category_id: str) -> dict[str, Any]:
        """Remove a category and detach the places that referenced it."""
        loaded = self.repository.get_categories()
        if not loaded["success"]:
            return storage_failure(loaded)
        categories = [strip_computed(c) for c in loaded["data"]]

        index = next((i for i, c in enumerate(categories) if c.get("id") == category_id), None)
        if index is None:
            return fail(self._msg("not_found"), "not_found")
        removed = categories.pop(index)

        # Categories first; a failed places write leaves only dangling category ids.
        saved = self.repository.save_categories(categories)
        if not saved["success"]:
            return storage_failure(saved)

        detached = 0
        places_loaded = self.repository.get_places()
        if places_loaded["success"]:
            places = places_loaded["data"]
            stamp = now_iso()
            for place in places:
                if place.get("category") == category_id:
                    place["category"] = None
                    place["updatedAt"] = stamp
                    detached += 1
            if detached:
                saved_places = self.repository.save_places(places)
                if not saved_places["success"]:
                    logger.error("Deleted category %s but could not detach its places", category_id)
                    return storage_failure(saved_places)
        else:
            logger.warning("Could not load places while deleting category %s", category_id)

        logger.info("Deleted category %s; detached %d places", category_id, detached)
        return ok(
            self._msg("deleted", name=(removed.get("name") or {}).get("th", "")),
            deletedId=category_id,
            detachedPlaces=detached,
        )
