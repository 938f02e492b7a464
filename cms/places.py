"""
cms/places.py -- Place management for the admin panel.

Covers create/update/delete, status and featured changes (single and
bulk), the append-only ``statusHistory``, filtered search with
pagination, and dashboard statistics.

Every write rewrites the whole ``places.json`` document through the
repository, which snapshots the previous version first.

Featured places:
    ``featured: true`` on the record is what the admin panel writes and
    what the statistics count.  Older data may instead carry the legacy
    ``status: "featured"``; ``is_featured()`` accepts either so that the
    public site still shows those places.  Neither value is rewritten to
    match the other.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from pydantic import ValidationError

from cms.results import fail, ok, storage_failure
from datastore.models import PLACE_STATUSES, PlaceInput, StatusChange, validation_messages
from datastore.utils import ensure_utc, generate_id, now_iso, now_utc, parse_iso

logger = logging.getLogger(__name__)

LEGACY_FEATURED_STATUS = "featured"
RECENT_DAYS = 7
DEFAULT_SEARCH_LIMIT = 50

CONTACT_FIELDS = ("address", "phone", "website", "facebook", "instagram", "coordinates")

STATUS_LABELS = {
    "th": {"draft": "ร่าง", "published": "เผยแพร่", "inactive": "ไม่ใช้งาน"},
    "en": {"draft": "Draft", "published": "Published", "inactive": "Inactive"},
}

_MESSAGES = {
    "loaded": {"th": "โหลดข้อมูลสำเร็จ", "en": "Loaded successfully."},
    "created": {"th": "เพิ่มสถานที่เรียบร้อยแล้ว", "en": "Place created."},
    "updated": {"th": "อัปเดตสถานที่เรียบร้อยแล้ว", "en": "Place updated."},
    "deleted": {"th": "ลบสถานที่เรียบร้อยแล้ว", "en": "Place deleted."},
    "not_found": {"th": "ไม่พบสถานที่ที่ต้องการ", "en": "Place not found."},
    "category_missing": {
        "th": "หมวดหมู่ที่เลือกไม่มีอยู่ในระบบ",
        "en": "The selected category does not exist.",
    },
    "invalid_status": {
        "th": "สถานะไม่ถูกต้อง (ต้องเป็น draft, published, หรือ inactive)",
        "en": "Invalid status (must be draft, published or inactive).",
    },
    "invalid_featured": {
        "th": "ค่า featured ต้องเป็น true หรือ false",
        "en": "featured must be true or false.",
    },
    "nothing_to_change": {
        "th": "กรุณาระบุสถานะหรือค่า featured ที่ต้องการเปลี่ยน",
        "en": "Give a status or a featured value to change.",
    },
    "invalid_ids": {
        "th": "กรุณาระบุรายการสถานที่ที่ต้องการ",
        "en": "Give the ids of the places to change.",
    },
    "invalid_paging": {
        "th": "ค่า limit และ offset ต้องเป็นจำนวนเต็มที่ไม่ติดลบ",
        "en": "limit and offset must be non-negative integers.",
    },
    "status_changed": {
        "th": "เปลี่ยนสถานะเป็น {status} เรียบร้อยแล้ว",
        "en": "Status changed to {status}.",
    },
    "featured_on": {"th": "ตั้งเป็นสถานที่เด่นเรียบร้อยแล้ว", "en": "Marked as featured."},
    "featured_off": {"th": "ยกเลิกสถานที่เด่นเรียบร้อยแล้ว", "en": "No longer featured."},
    "bulk_updated": {
        "th": "อัปเดตสถานที่ {count} รายการเรียบร้อยแล้ว",
        "en": "Updated {count} places.",
    },
    "bulk_deleted": {
        "th": "ลบสถานที่ {count} รายการเรียบร้อยแล้ว",
        "en": "Deleted {count} places.",
    },
    "some_missing": {
        "th": " (ไม่พบสถานที่ {count} รายการ)",
        "en": " ({count} places not found)",
    },
}


# ------------------------------------------------------------------
# Record helpers
# ------------------------------------------------------------------

def is_featured(place: dict) -> bool:
    """True when the place is featured by flag or by the legacy status."""
    return place.get("featured") is True or place.get("status") == LEGACY_FEATURED_STATUS


def status_label(status: str | None, language: str = "th") -> str | None:
    labels = STATUS_LABELS.get(language, STATUS_LABELS["th"])
    return labels.get(status, status)


def timestamp_of(place: dict, key: str) -> datetime:
    return parse_iso(place.get(key)) or datetime.min.replace(tzinfo=timezone.utc)


def newest_first(places: Iterable[dict]) -> list[dict]:
    return sorted(places, key=lambda p: timestamp_of(p, "createdAt"), reverse=True)


def _text_of(value, lang: str) -> str:
    if isinstance(value, dict):
        text = value.get(lang)
        return text.lower() if isinstance(text, str) else ""
    return ""


def matches_text(place: dict, query: str) -> bool:
    """Case-insensitive match on Thai/English name and description and tags."""
    needle = query.strip().lower()
    if not needle:
        return True
    for field in ("name", "description"):
        for lang in ("th", "en"):
            if needle in _text_of(place.get(field), lang):
                return True
    tags = place.get("tags") or []
    return any(isinstance(tag, str) and needle in tag.lower() for tag in tags)


def parse_flag(value) -> bool | None:
    """Interpret a query-string style boolean.  ``None`` means no filter."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def paginate(items: list, limit, offset) -> tuple[list, dict]:
    """Slice *items* and describe the page.

    Raises
    ------
    ValueError
        If *limit* or *offset* is not a non-negative integer.
    """
    limit = int(limit)
    offset = int(offset)
    if limit < 0 or offset < 0:
        raise ValueError("limit and offset must be non-negative")
    total = len(items)
    end = offset + limit
    page = items[offset:end]
    return page, {"total": total, "limit": limit, "offset": offset, "hasMore": end < total}


def _merge_input(existing: dict, data: dict) -> dict:
    """Overlay submitted fields on an existing record for re-validation.

    Flat contact fields (``phone``, ``website`` ...) are folded into
    ``contact``; a partial ``contact`` dict only replaces the keys it has.
    """
    merged = {**existing, **data}
    contact = dict(existing.get("contact") or {})
    if isinstance(data.get("contact"), dict):
        contact.update(data["contact"])
    for key in CONTACT_FIELDS:
        if key in data:
            contact[key] = data[key]
            merged.pop(key, None)
    merged["contact"] = contact
    return merged


class PlaceService:
    """Admin operations over ``places.json``.

    Parameters
    ----------
    repository : datastore.repository.DataRepository
    """

    def __init__(self, repository):
        self.repository = repository

    @property
    def language(self) -> str:
        return getattr(self.repository, "language", "th")

    def _msg(self, key: str, **fields) -> str:
        return _MESSAGES[key].get(self.language, _MESSAGES[key]["th"]).format(**fields)

    def _category_exists(self, category_id: str) -> bool | dict:
        """True/False, or the failed repository result when categories cannot load."""
        loaded = self.repository.get_categories()
        if not loaded["success"]:
            return loaded
        return any(c.get("id") == category_id for c in loaded["data"])

    def _validate(self, data: dict) -> tuple[PlaceInput | None, dict | None]:
        try:
            payload = PlaceInput.model_validate(data)
        except ValidationError as exc:
            errors = validation_messages(exc)
            return None, fail(", ".join(errors), "invalid_input", errors)

        exists = self._category_exists(payload.category)
        if isinstance(exists, dict):
            return None, storage_failure(exists)
        if not exists:
            return None, fail(self._msg("category_missing"), "invalid_input")
        return payload, None

    def _check_changes(self, status, featured) -> dict | None:
        if status is None and featured is None:
            return fail(self._msg("nothing_to_change"), "invalid_input")
        if status is not None and status not in PLACE_STATUSES:
            return fail(self._msg("invalid_status"), "invalid_input")
        if featured is not None and not isinstance(featured, bool):
            return fail(self._msg("invalid_featured"), "invalid_input")
        return None

    @staticmethod
    def _apply_changes(place: dict, status, featured, changed_by, stamp: str) -> bool:
        """Apply a status/featured change in place.  Returns whether the
        status itself changed (and a history entry was appended)."""
        status_changed = status is not None and place.get("status") != status
        if status_changed:
            entry = StatusChange(
                from_=place.get("status"), to=status, changedAt=stamp, changedBy=changed_by
            )
            place.setdefault("statusHistory", []).append(entry.to_record())
            place["status"] = status
        if featured is not None:
            place["featured"] = featured
        place["updatedAt"] = stamp
        return status_changed

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_places(self) -> dict[str, Any]:
        """All places, newest first."""
        loaded = self.repository.get_places()
        if not loaded["success"]:
            return storage_failure(loaded)
        return ok(self._msg("loaded"), places=newest_first(loaded["data"]))

    def get_place(self, place_id: str) -> dict[str, Any]:
        loaded = self.repository.get_places()
        if not loaded["success"]:
            return storage_failure(loaded)
        place = next((p for p in loaded["data"] if p.get("id") == place_id), None)
        if place is None:
            return fail(self._msg("not_found"), "not_found")
        return ok(self._msg("loaded"), place=place)

    def search(
        self,
        q: str | None = None,
        category: str | None = None,
        status: str | None = None,
        featured=None,
        limit=DEFAULT_SEARCH_LIMIT,
        offset=0,
    ) -> dict[str, Any]:
        """Filter places in memory and return one page, newest first."""
        loaded = self.repository.get_places()
        if not loaded["success"]:
            return storage_failure(loaded)
        places = loaded["data"]

        if q and q.strip():
            places = [p for p in places if matches_text(p, q)]
        if category and category.strip():
            places = [p for p in places if p.get("category") == category.strip()]
        if status and status.strip():
            places = [p for p in places if p.get("status") == status.strip()]
        flag = parse_flag(featured)
        if flag is not None:
            places = [p for p in places if (p.get("featured") is True) == flag]

        try:
            page, pagination = paginate(newest_first(places), limit, offset)
        except (TypeError, ValueError):
            return fail(self._msg("invalid_paging"), "invalid_input")
        return ok(self._msg("loaded"), places=page, pagination=pagination)

    def stats(self, now: datetime | None = None) -> dict[str, Any]:
        """Counts for the dashboard.  ``recently*`` cover the last 7 days."""
        loaded = self.repository.get_places()
        if not loaded["success"]:
            return storage_failure(loaded)
        places = loaded["data"]

        stats = {
            "total": len(places),
            "byStatus": {
                status: sum(1 for p in places if p.get("status") == status)
                for status in PLACE_STATUSES
            },
            "featured": sum(1 for p in places if p.get("featured") is True),
            "byCategory": {},
        }

        categories = self.repository.get_categories()
        if categories["success"]:
            for category in categories["data"]:
                stats["byCategory"][category["id"]] = {
                    "name": category["name"].get("th"),
                    "count": sum(1 for p in places if p.get("category") == category["id"]),
                }
        else:
            logger.warning("Category breakdown skipped: %s", categories.get("error"))

        since = ensure_utc(now or now_utc()) - timedelta(days=RECENT_DAYS)
        stats["recentlyCreated"] = sum(1 for p in places if timestamp_of(p, "createdAt") > since)
        stats["recentlyUpdated"] = sum(1 for p in places if timestamp_of(p, "updatedAt") > since)
        return ok(self._msg("loaded"), stats=stats)

    def history(self, place_id: str) -> dict[str, Any]:
        """The status history of a place with human-readable labels."""
        found = self.get_place(place_id)
        if not found["success"]:
            return found
        place = found["place"]
        lang = self.language
        entries = [
            {
                **entry,
                "fromText": status_label(entry.get("from"), lang),
                "toText": status_label(entry.get("to"), lang),
            }
            for entry in place.get("statusHistory") or []
        ]
        return ok(
            self._msg("loaded"),
            history=entries,
            currentStatus=place.get("status"),
            currentStatusText=status_label(place.get("status"), lang),
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def create_place(self, data: dict, user_id: str | None = None) -> dict[str, Any]:
        """Validate *data* and append a new place (``draft`` unless given)."""
        payload, error = self._validate(data)
        if error:
            return error

        loaded = self.repository.get_places()
        if not loaded["success"]:
            return storage_failure(loaded)
        places = loaded["data"]

        stamp = now_iso()
        place = {
            "id": generate_id(),
            **payload.to_record(),
            "statusHistory": [],
            "createdAt": stamp,
            "updatedAt": stamp,
            "createdBy": user_id,
        }
        places.append(place)

        saved = self.repository.save_places(places)
        if not saved["success"]:
            return storage_failure(saved)

        logger.info("Created place %s", place["id"])
        return ok(self._msg("created"), place=place)

    def update_place(self, place_id: str, data: dict, changed_by: str | None = None) -> dict[str, Any]:
        """Apply a (possibly partial) edit.  The merged record must validate.

        A status change made through an edit is recorded in
        ``statusHistory`` like one made through :meth:`change_status`.
        """
        loaded = self.repository.get_places()
        if not loaded["success"]:
            return storage_failure(loaded)
        places = loaded["data"]

        index = next((i for i, p in enumerate(places) if p.get("id") == place_id), None)
        if index is None:
            return fail(self._msg("not_found"), "not_found")
        existing = places[index]

        payload, error = self._validate(_merge_input(existing, data))
        if error:
            return error

        stamp = now_iso()
        fields = payload.to_record()
        new_status = fields.pop("status")
        updated = {**existing, **fields, "id": place_id}
        self._apply_changes(updated, new_status, None, changed_by, stamp)
        places[index] = updated

        saved = self.repository.save_places(places)
        if not saved["success"]:
            return storage_failure(saved)
        return ok(self._msg("updated"), place=updated)

    def delete_place(self, place_id: str) -> dict[str, Any]:
        """Remove a place.  Its image filenames are returned for cleanup."""
        loaded = self.repository.get_places()
        if not loaded["success"]:
            return storage_failure(loaded)
        places = loaded["data"]

        index = next((i for i, p in enumerate(places) if p.get("id") == place_id), None)
        if index is None:
            return fail(self._msg("not_found"), "not_found")
        removed = places.pop(index)

        saved = self.repository.save_places(places)
        if not saved["success"]:
            return storage_failure(saved)

        logger.info("Deleted place %s", place_id)
        return ok(
            self._msg("deleted"),
            deletedId=place_id,
            orphanedImages=_image_filenames([removed]),
        )

    def change_status(
        self,
        place_id: str,
        status: str | None = None,
        featured: bool | None = None,
        changed_by: str | None = None,
    ) -> dict[str, Any]:
        """Set the status and/or the featured flag of one place.

        A ``statusHistory`` entry is appended only when the status differs
        from the current one.
        """
        error = self._check_changes(status, featured)
        if error:
            return error

        loaded = self.repository.get_places()
        if not loaded["success"]:
            return storage_failure(loaded)
        places = loaded["data"]

        place = next((p for p in places if p.get("id") == place_id), None)
        if place is None:
            return fail(self._msg("not_found"), "not_found")

        self._apply_changes(place, status, featured, changed_by, now_iso())

        saved = self.repository.save_places(places)
        if not saved["success"]:
            return storage_failure(saved)

        parts = []
        if status is not None:
            parts.append(self._msg("status_changed", status=status_label(status, self.language)))
        if featured is not None:
            parts.append(self._msg("featured_on" if featured else "featured_off"))
        return ok(" ".join(parts), place=place)

    def bulk_update_status(
        self,
        place_ids: list,
        status: str | None = None,
        featured: bool | None = None,
        changed_by: str | None = None,
    ) -> dict[str, Any]:
        if not isinstance(place_ids, list) or not place_ids:
            return fail(self._msg("invalid_ids"), "invalid_input")
        error = self._check_changes(status, featured)
        if error:
            return error

        loaded = self.repository.get_places()
        if not loaded["success"]:
            return storage_failure(loaded)
        places = loaded["data"]
        by_id = {p.get("id"): p for p in places}

        stamp = now_iso()
        updated_count = 0
        not_found = []
        for place_id in place_ids:
            place = by_id.get(place_id)
            if place is None:
                not_found.append(place_id)
                continue
            self._apply_changes(place, status, featured, changed_by, stamp)
            updated_count += 1

        if updated_count:
            saved = self.repository.save_places(places)
            if not saved["success"]:
                return storage_failure(saved)

        message = self._msg("bulk_updated", count=updated_count)
        if not_found:
            message += self._msg("some_missing", count=len(not_found))
        return ok(message, updatedCount=updated_count, notFoundIds=not_found)

    def bulk_delete(self, place_ids: list) -> dict[str, Any]:
        if not isinstance(place_ids, list) or not place_ids:
            return fail(self._msg("invalid_ids"), "invalid_input")

        loaded = self.repository.get_places()
        if not loaded["success"]:
            return storage_failure(loaded)
        places = loaded["data"]

        wanted = set(place_ids)
        removed = [p for p in places if p.get("id") in wanted]
        removed_ids = {p.get("id") for p in removed}
        not_found = [pid for pid in place_ids if pid not in removed_ids]

        if removed:
            remaining = [p for p in places if p.get("id") not in wanted]
            saved = self.repository.save_places(remaining)
            if not saved["success"]:
                return storage_failure(saved)

        message = self._msg("bulk_deleted", count=len(removed))
        if not_found:
            message += self._msg("some_missing", count=len(not_found))
        return ok(
            message,
            deletedCount=len(removed),
            notFoundIds=not_found,
            orphanedImages=_image_filenames(removed),
        )


def _image_filenames(places: list) -> list[str]:
    filenames = []
    for place in places:
        for image in place.get("images") or []:
            if isinstance(image, str):
                filenames.append(image)
            elif isinstance(image, dict) and image.get("filename"):
                filenames.append(image["filename"])
    return filenames
