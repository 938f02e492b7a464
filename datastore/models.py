"""
datastore/models.py -- Pydantic v2 input models for CMS records.

The JSON Schemas in ``datastore.schemas`` only guard the store-level
invariants (ids and Thai names).  The models here carry the richer rules
the admin panel enforces when a record is created or edited:

    - Thai name (and, for places, Thai description) is mandatory
    - place status is one of ``draft``, ``published``, ``inactive``
    - contact phone numbers use the Thai ``0XX-XXX-XXXX`` layout
    - website, Facebook and Instagram links are well-formed
    - coordinates are given as a pair and fall inside Thailand

Usage::

    from datastore.models import PlaceInput, validation_messages

    try:
        place = PlaceInput.model_validate(form_data)
    except ValidationError as exc:
        errors = validation_messages(exc)
"""

from __future__ import annotations

import re
from typing import Any, Literal, Optional
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    ValidationError,
    field_validator,
    model_validator,
)

PLACE_STATUSES = ("draft", "published", "inactive")
PlaceStatus = Literal["draft", "published", "inactive"]

# Thai bounding box used to sanity-check map pins.
LAT_RANGE = (5.0, 21.0)
LNG_RANGE = (97.0, 106.0)

_PHONE_RE = re.compile(r"^0[2-9]\d-\d{3}-\d{4}$")
_FACEBOOK_RE = re.compile(r"^https?://(www\.|m\.)?facebook\.com/[a-zA-Z0-9._-]+/?$")
_INSTAGRAM_RE = re.compile(r"^https?://(www\.)?instagram\.com/[a-zA-Z0-9._]+/?$")


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# ------------------------------------------------------------------
# Shared pieces
# ------------------------------------------------------------------

class LocalizedText(BaseModel):
    """A text value in the four supported languages.  Only ``th`` is required
    by the models that use it; the others default to empty strings."""

    model_config = ConfigDict(extra="ignore")

    th: str = ""
    en: str = ""
    zh: str = ""
    ja: str = ""

    @field_validator("th", "en", "zh", "ja", mode="before")
    @classmethod
    def _coerce_text(cls, v):
        if v is None:
            return ""
        if not isinstance(v, str):
            raise ValueError("must be text")
        return v.strip()


class Coordinates(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None

    @field_validator("lat", "lng", mode="before")
    @classmethod
    def _empty_to_none(cls, v):
        return None if _blank(v) else v

    @model_validator(mode="after")
    def _check_pair(self) -> "Coordinates":
        if (self.lat is None) != (self.lng is None):
            raise ValueError("กรุณากรอกพิกัดให้ครบทั้งละติจูดและลองจิจูด")
        if self.lat is not None:
            if not LAT_RANGE[0] <= self.lat <= LAT_RANGE[1]:
                raise ValueError("ละติจูดต้องอยู่ระหว่าง 5-21 (ประเทศไทย)")
            if not LNG_RANGE[0] <= self.lng <= LNG_RANGE[1]:
                raise ValueError("ลองจิจูดต้องอยู่ระหว่าง 97-106 (ประเทศไทย)")
        return self


class Contact(BaseModel):
    """Contact block of a place.  Every field is optional."""

    model_config = ConfigDict(extra="ignore")

    address: str = ""
    phone: str = ""
    website: str = ""
    facebook: str = ""
    instagram: str = ""
    coordinates: Coordinates = Field(default_factory=Coordinates)

    @field_validator("address", "phone", "website", "facebook", "instagram", mode="before")
    @classmethod
    def _coerce_text(cls, v):
        if v is None:
            return ""
        if not isinstance(v, str):
            raise ValueError("must be text")
        return v.strip()

    @field_validator("coordinates", mode="before")
    @classmethod
    def _coerce_coordinates(cls, v):
        return {} if v is None else v

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, v: str) -> str:
        if v and not _PHONE_RE.match(v):
            raise ValueError(
                "รูปแบบหมายเลขโทรศัพท์ไม่ถูกต้อง (ใช้รูปแบบ 08X-XXX-XXXX หรือ 02X-XXX-XXXX)"
            )
        return v

    @field_validator("website")
    @classmethod
    def _check_website(cls, v: str) -> str:
        if v:
            parsed = urlparse(v)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ValueError(
                    "รูปแบบ URL เว็บไซต์ไม่ถูกต้อง (ต้องเริ่มต้นด้วย http:// หรือ https://)"
                )
        return v

    @field_validator("facebook")
    @classmethod
    def _check_facebook(cls, v: str) -> str:
        if v and not _FACEBOOK_RE.match(v):
            raise ValueError(
                "รูปแบบลิงก์ Facebook ไม่ถูกต้อง (ต้องเป็น https://facebook.com/username)"
            )
        return v

    @field_validator("instagram")
    @classmethod
    def _check_instagram(cls, v: str) -> str:
        if v and not _INSTAGRAM_RE.match(v):
            raise ValueError(
                "รูปแบบลิงก์ Instagram ไม่ถูกต้อง (ต้องเป็น https://instagram.com/username)"
            )
        return v


class PlaceImage(BaseModel):
    model_config = ConfigDict(extra="allow")

    filename: str = Field(min_length=1)
    alt: str = ""
    featured: StrictBool = False
    order: int = 0


class StatusChange(BaseModel):
    """One entry of a place's append-only ``statusHistory``."""

    model_config = ConfigDict(populate_by_name=True)

    from_: Optional[str] = Field(default=None, alias="from")
    to: str
    changedAt: str
    changedBy: Optional[str] = None

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


# ------------------------------------------------------------------
# Record inputs
# ------------------------------------------------------------------

class PlaceInput(BaseModel):
    """Editable fields of a place as submitted by the admin panel.

    ``categoryId`` is accepted as an alias of ``category``.  Server-managed
    fields (``id``, timestamps, ``statusHistory``, ``createdBy``) are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    name: LocalizedText
    description: LocalizedText
    category: str
    images: list[PlaceImage] = Field(default_factory=list)
    contact: Contact = Field(default_factory=Contact)
    hours: str = ""
    priceRange: str = ""
    status: PlaceStatus = "draft"
    featured: StrictBool = False
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalise(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            if _blank(data.get("category")) and not _blank(data.get("categoryId")):
                data["category"] = data["categoryId"]
            data.setdefault("category", None)
            for key in ("name", "description"):
                if data.get(key) is None:
                    data[key] = {}
            for key in ("hours", "priceRange"):
                if data.get(key) is None:
                    data.pop(key, None)
            if data.get("status") in (None, ""):
                data.pop("status", None)
            if data.get("contact") is None:
                data.pop("contact", None)
        return data

    @field_validator("name")
    @classmethod
    def _require_thai_name(cls, v: LocalizedText) -> LocalizedText:
        if not v.th:
            raise ValueError("กรุณากรอกชื่อสถานที่ภาษาไทย")
        return v

    @field_validator("description")
    @classmethod
    def _require_thai_description(cls, v: LocalizedText) -> LocalizedText:
        if not v.th:
            raise ValueError("กรุณากรอกคำอธิบายภาษาไทย")
        return v

    @field_validator("category", mode="before")
    @classmethod
    def _require_category(cls, v):
        if _blank(v):
            raise ValueError("กรุณาเลือกหมวดหมู่")
        if not isinstance(v, str):
            raise ValueError("กรุณาเลือกหมวดหมู่")
        return v.strip()

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        return [t.strip() for t in v if isinstance(t, str) and t.strip()]

    def to_record(self) -> dict[str, Any]:
        """Return the fields in the shape stored in ``places.json``."""
        return self.model_dump()


class CategoryInput(BaseModel):
    """Editable fields of a category."""

    model_config = ConfigDict(extra="ignore")

    name: LocalizedText
    icon: str
    order: Optional[int] = None

    @model_validator(mode="before")
    @classmethod
    def _fill_required(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            data.setdefault("name", None)
            data.setdefault("icon", None)
        return data

    @field_validator("name", mode="before")
    @classmethod
    def _name_object(cls, v):
        if not isinstance(v, dict) and not isinstance(v, LocalizedText):
            raise ValueError("ข้อมูลชื่อหมวดหมู่ไม่ถูกต้อง")
        return v

    @field_validator("name")
    @classmethod
    def _require_thai_name(cls, v: LocalizedText) -> LocalizedText:
        if not v.th:
            raise ValueError("กรุณากรอกชื่อหมวดหมู่ภาษาไทย")
        return v

    @field_validator("icon", mode="before")
    @classmethod
    def _require_icon(cls, v):
        if _blank(v) or not isinstance(v, str):
            raise ValueError("กรุณาเลือกไอคอน")
        return v.strip()

    @field_validator("order", mode="before")
    @classmethod
    def _check_order(cls, v):
        if _blank(v):
            return None
        try:
            order = int(v)
        except (TypeError, ValueError, OverflowError):
            raise ValueError("ลำดับการแสดงต้องเป็นตัวเลขที่มากกว่า 0")
        # int() truncates, so 1.7 would silently become 1
        if isinstance(v, float) and not v.is_integer():
            raise ValueError("ลำดับการแสดงต้องเป็นตัวเลขที่มากกว่า 0")
        if isinstance(v, bool) or order <= 0:
            raise ValueError("ลำดับการแสดงต้องเป็นตัวเลขที่มากกว่า 0")
        return order


# ------------------------------------------------------------------
# Error humanization
# ------------------------------------------------------------------

def validation_messages(exc: ValidationError) -> list[str]:
    """Flatten a Pydantic ``ValidationError`` into readable messages.

    Messages raised by our own validators are returned verbatim; built-in
    errors are prefixed with the dotted field path.
    """
    messages: list[str] = []
    for err in exc.errors():
        msg = err.get("msg", "")
        if err.get("type") == "value_error":
            text = msg.removeprefix("Value error, ")
        else:
            loc = ".".join(str(p) for p in err.get("loc", ()))
            text = f"{loc}: {msg}" if loc else msg
        if text not in messages:
            messages.append(text)
    return messages
