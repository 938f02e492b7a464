"""
cms/public.py -- Read-only catalogue for the public tourism site.

Only published places are visible, and only through an allow-list of
fields (``statusHistory``, ``createdBy`` and the like never leave the
admin side).  A place still carrying the legacy ``status: "featured"`` is
treated as published and featured.

Categories marked ``status`` other than ``active`` are hidden; records
without a ``status`` field are visible.
"""

from __future__ import annotations

import logging
import random
from typing import Any

from cms.places import (
    LEGACY_FEATURED_STATUS,
    is_featured,
    matches_text,
    paginate,
    parse_flag,
    timestamp_of,
)
from cms.results import fail, ok, storage_failure

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
DEFAULT_FEATURED_LIMIT = 6
CATEGORY_PREVIEW_SIZE = 12
SORT_FIELDS = ("name", "createdAt", "updatedAt")
CATEGORY_SORT_FIELDS = ("name", "createdAt", "rating")

PUBLIC_PLACE_FIELDS = (
    "id", "name", "description", "category", "images", "location", "contact",
    "hours", "priceRange", "tags", "createdAt", "updatedAt",
)

_MESSAGES = {
    "loaded": {"th": "โหลดข้อมูลสำเร็จ", "en": "Loaded successfully."},
    "place_not_found": {
        "th": "ไม่พบสถานที่ท่องเที่ยวที่ต้องการ",
        "en": "The requested place was not found.",
    },
    "category_not_found": {"th": "ไม่พบหมวดหมู่ที่ต้องการ", "en": "Category not found."},
    "invalid_paging": {
        "th": "ค่า limit และ offset ต้องเป็นจำนวนเต็มที่ไม่ติดลบ",
        "en": "limit and offset must be non-negative integers.",
    },
}


def is_public(place: dict) -> bool:
    return place.get("status") in ("published", LEGACY_FEATURED_STATUS)


def is_visible_category(category: dict) -> bool:
    return category.get("status", "active") == "active"


def public_place(place: dict) -> dict:
    """Copy the publishable fields of *place*."""
    clean = {key: place.get(key) for key in PUBLIC_PLACE_FIELDS}
    clean["featured"] = is_featured(place)
    clean["rating"] = place.get("rating") or 0
    return clean


def place_summary(place: dict) -> dict:
    """A compact card: first image only, no contact block."""
    images = place.get("images") or []
    return {
        "id": place.get("id"),
        "name": place.get("name"),
        "description": place.get("description"),
        "category": place.get("category"),
        "images": images[:1],
        "location": place.get("location"),
        "rating": place.get("rating") or 0,
        "priceRange": place.get("priceRange"),
        "featured": is_featured(place),
    }


def _name_key(place: dict) -> str:
    name = place.get("name") or {}
    return str(name.get("th") or "").lower()


class PublicCatalog:
    """Published content for anonymous visitors.

    Parameters
    ----------
    repository : datastore.repository.DataRepository
    rng : random.Random, optional
        Source of randomness for :meth:`featured_places`.
    """

    def __init__(self, repository, rng: random.Random | None = None):
        self.repository = repository
        self.rng = rng or random.Random()

    def _msg(self, key: str) -> str:
        lang = getattr(self.repository, "language", "th")
        return _MESSAGES[key].get(lang, _MESSAGES[key]["th"])

    def _published(self) -> tuple[list | None, dict | None]:
        loaded = self.repository.get_places()
        if not loaded["success"]:
            return None, storage_failure(loaded)
        return [p for p in loaded["data"] if is_public(p)], None

    # ------------------------------------------------------------------
    # Places
    # ------------------------------------------------------------------

    def list_places(
        self,
        category: str | None = None,
        search: str | None = None,
        featured=None,
        sort_by: str = "name",
        sort_order: str = "asc",
        limit=DEFAULT_PAGE_SIZE,
        offset=0,
    ) -> dict[str, Any]:
        """Published places, filtered, sorted and paginated.

        ``sort_by`` is ``name`` (Thai name), ``createdAt`` or ``updatedAt``;
        anything else sorts by name.
        """
        places, error = self._published()
        if error:
            return error

        if category:
            places = [p for p in places if p.get("category") == category]
        if search:
            places = [p for p in places if matches_text(p, search)]
        if parse_flag(featured):
            places = [p for p in places if is_featured(p)]

        if sort_by not in SORT_FIELDS:
            sort_by = "name"
        if sort_by == "name":
            places = sorted(places, key=_name_key, reverse=(sort_order == "desc"))
        else:
            places = sorted(
                places,
                key=lambda p: timestamp_of(p, sort_by),
                reverse=(sort_order == "desc"),
            )

        try:
            page, pagination = paginate(places, limit, offset)
        except (TypeError, ValueError):
            return fail(self._msg("invalid_paging"), "invalid_input")

        return ok(
            self._msg("loaded"),
            data=[public_place(p) for p in page],
            pagination=pagination,
            filters={
                "category": category,
                "search": search,
                "featured": featured,
                "sortBy": sort_by,
                "sortOrder": sort_order,
            },
        )

    def get_place(self, place_id: str) -> dict[str, Any]:
        places, error = self._published()
        if error:
            return error
        place = next((p for p in places if p.get("id") == place_id), None)
        if place is None:
            return fail(self._msg("place_not_found"), "not_found")
        return ok(self._msg("loaded"), data=public_place(place))

    def featured_places(self, limit=DEFAULT_FEATURED_LIMIT) -> dict[str, Any]:
        """A random selection of published featured places."""
        places, error = self._published()
        if error:
            return error
        featured = [p for p in places if is_featured(p)]
        self.rng.shuffle(featured)
        try:
            count = max(0, int(limit))
        except (TypeError, ValueError):
            return fail(self._msg("invalid_paging"), "invalid_input")
        return ok(self._msg("loaded"), data=[place_summary(p) for p in featured[:count]])

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def _categories(self) -> tuple[list | None, dict | None]:
        loaded = self.repository.get_categories()
        if not loaded["success"]:
            return None, storage_failure(loaded)
        return [c for c in loaded["data"] if is_visible_category(c)], None

    @staticmethod
    def _public_category(category: dict, published: list) -> dict:
        return {
            "id": category.get("id"),
            "name": category.get("name"),
            "description": category.get("description"),
            "icon": category.get("icon"),
            "slug": category.get("slug"),
            "color": category.get("color"),
            "order": category.get("order") or 0,
            "placesCount": sum(1 for p in published if p.get("category") == category.get("id")),
        }

    def list_categories(self) -> dict[str, Any]:
        """Visible categories by ``order``, counting published places only."""
        categories, error = self._categories()
        if error:
            return error
        published, error = self._published()
        if error:
            return error
        data = sorted(
            (self._public_category(c, published) for c in categories),
            key=lambda c: c["order"],
        )
        return ok(self._msg("loaded"), data=data, total=len(data))

    def get_category_by_slug(self, slug: str) -> dict[str, Any]:
        """One category with up to 12 of its places, featured first."""
        categories, error = self._categories()
        if error:
            return error
        category = next((c for c in categories if c.get("slug") == slug), None)
        if category is None:
            return fail(self._msg("category_not_found"), "not_found")

        published, error = self._published()
        if error:
            return error
        in_category = [p for p in published if p.get("category") == category.get("id")]
        in_category.sort(key=lambda p: timestamp_of(p, "updatedAt"), reverse=True)
        in_category.sort(key=lambda p: not is_featured(p))

        data = self._public_category(category, published)
        data["places"] = [place_summary(p) for p in in_category[:CATEGORY_PREVIEW_SIZE]]
        return ok(self._msg("loaded"), data=data)

    def category_places(
        self,
        id_or_slug: str,
        search: str | None = None,
        sort_by: str = "name",
        sort_order: str = "asc",
        limit=DEFAULT_PAGE_SIZE,
        offset=0,
    ) -> dict[str, Any]:
        """Published places of one visible category, looked up by id or slug.

        ``sort_by`` is ``name`` (Thai name), ``createdAt`` or ``rating``;
        anything else sorts by name.
        """
        categories, error = self._categories()
        if error:
            return error
        category = next(
            (c for c in categories if id_or_slug in (c.get("id"), c.get("slug"))), None
        )
        if category is None:
            return fail(self._msg("category_not_found"), "not_found")

        published, error = self._published()
        if error:
            return error
        places = [p for p in published if p.get("category") == category.get("id")]
        if search:
            places = [p for p in places if matches_text(p, search)]

        if sort_by not in CATEGORY_SORT_FIELDS:
            sort_by = "name"
        reverse = sort_order == "desc"
        if sort_by == "name":
            places = sorted(places, key=_name_key, reverse=reverse)
        elif sort_by == "rating":
            places = sorted(places, key=lambda p: p.get("rating") or 0, reverse=reverse)
        else:
            places = sorted(places, key=lambda p: timestamp_of(p, sort_by), reverse=reverse)

        try:
            page, pagination = paginate(places, limit, offset)
        except (TypeError, ValueError):
            return fail(self._msg("invalid_paging"), "invalid_input")

        return ok(
            self._msg("loaded"),
            data=[public_place(p) for p in page],
            category={
                "id": category.get("id"),
                "name": category.get("name"),
                "slug": category.get("slug"),
            },
            pagination=pagination,
        )
