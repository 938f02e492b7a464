"""
Seed content for documents that must be synthesised from scratch.

Each builder returns a fresh list so callers may mutate the result freely.
"""

from __future__ import annotations

from datastore.utils import document_filename, now_iso

# bcrypt hash of the placeholder password "password"; operators are expected
# to change it on first login.
DEFAULT_ADMIN_PASSWORD_HASH = "$2b$10$92IXUNpkjO0rOQ5byMi.Ye4oKoEa3Ro9llC/.og/at2.uheWG/igi"


def default_places() -> list:
    return []


def default_categories() -> list:
    created = now_iso()
    return [
        {
            "id": "restaurant",
            "name": {
                "th": "ร้านอาหาร",
                "en": "Restaurant",
                "zh": "餐厅",
                "ja": "レストラン",
            },
            "slug": "restaurant",
            "icon": "utensils",
            "order": 1,
            "createdAt": created,
        },
        {
            "id": "accommodation",
            "name": {
                "th": "ที่พัก",
                "en": "Accommodation",
                "zh": "住宿",
                "ja": "宿泊施設",
            },
            "slug": "accommodation",
            "icon": "bed",
            "order": 2,
            "createdAt": created,
        },
        {
            "id": "attraction",
            "name": {
                "th": "สถานที่ท่องเที่ยว",
                "en": "Tourist Attraction",
                "zh": "旅游景点",
                "ja": "観光地",
            },
            "slug": "attraction",
            "icon": "camera",
            "order": 3,
            "createdAt": created,
        },
    ]


def default_users() -> list:
    return [
        {
            "id": "admin-001",
            "username": "admin",
            "password": DEFAULT_ADMIN_PASSWORD_HASH,
            "email": "admin@chiangmai-admin.com",
            "role": "admin",
            "loginAttempts": 0,
            "lockUntil": None,
            "lastLogin": None,
            "createdAt": now_iso(),
        }
    ]


_BUILDERS = {
    "places.json": default_places,
    "categories.json": default_categories,
    "users.json": default_users,
}


def default_document(name: str) -> list:
    """Return the seed document for *name* (an empty list for unknown names)."""
    builder = _BUILDERS.get(document_filename(name))
    return builder() if builder is not None else []
