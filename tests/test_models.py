"""
Tests for datastore/models.py -- admin input models and message flattening.

Covers:
    - PlaceInput required fields, aliases and defaults
    - Contact format checks (phone, website, Facebook, Instagram)
    - Coordinate pairing and the Thai bounding box
    - CategoryInput rules
    - validation_messages() output
"""

import pytest
from pydantic import ValidationError

from datastore.models import (
    CategoryInput,
    Contact,
    Coordinates,
    PlaceInput,
    StatusChange,
    validation_messages,
)


def _messages(model, data):
    with pytest.raises(ValidationError) as info:
        model.model_validate(data)
    return validation_messages(info.value)


# ======================================================================
# PlaceInput
# ======================================================================


class TestPlaceInput:
    """Tests for the place form model."""

    def test_valid_form(self, place_form):
        place = PlaceInput.model_validate(place_form)
        assert place.status == "draft"
        assert place.featured is False
        assert place.name.th == "ข้าวซอยแม่สาย"
        assert place.name.zh == ""
        assert place.tags == ["noodles", "local"]

    def test_to_record_shape(self, place_form):
        record = PlaceInput.model_validate(place_form).to_record()
        assert record["category"] == "restaurant"
        assert record["contact"]["coordinates"] == {"lat": 18.79, "lng": 98.98}
        assert record["images"] == []
        assert "id" not in record
        assert "statusHistory" not in record

    def test_category_id_alias(self, place_form):
        del place_form["category"]
        place_form["categoryId"] = "attraction"
        assert PlaceInput.model_validate(place_form).category == "attraction"

    def test_empty_form_reports_every_required_field(self):
        messages = _messages(PlaceInput, {})
        assert messages == [
            "กรุณากรอกชื่อสถานที่ภาษาไทย",
            "กรุณากรอกคำอธิบายภาษาไทย",
            "กรุณาเลือกหมวดหมู่",
        ]

    def test_blank_thai_name_rejected(self, place_form):
        place_form["name"] = {"th": "   ", "en": "Only English"}
        assert "กรุณากรอกชื่อสถานที่ภาษาไทย" in _messages(PlaceInput, place_form)

    def test_invalid_status_rejected(self, place_form):
        place_form["status"] = "featured"
        messages = _messages(PlaceInput, place_form)
        assert len(messages) == 1
        assert messages[0].startswith("status:")

    def test_empty_status_defaults_to_draft(self, place_form):
        place_form["status"] = ""
        assert PlaceInput.model_validate(place_form).status == "draft"

    def test_featured_must_be_boolean(self, place_form):
        place_form["featured"] = "yes"
        with pytest.raises(ValidationError):
            PlaceInput.model_validate(place_form)

    def test_tags_from_comma_string(self, place_form):
        place_form["tags"] = " market, night ,, food "
        assert PlaceInput.model_validate(place_form).tags == ["market", "night", "food"]

    def test_server_fields_ignored(self, place_form):
        place_form.update({"id": "forged", "createdAt": "2000-01-01", "statusHistory": [1]})
        record = PlaceInput.model_validate(place_form).to_record()
        assert "id" not in record and "createdAt" not in record

    def test_null_optional_fields(self, place_form):
        place_form.update({"hours": None, "priceRange": None, "contact": None, "tags": None})
        place = PlaceInput.model_validate(place_form)
        assert place.hours == ""
        assert place.contact.phone == ""
        assert place.tags == []

    def test_image_requires_filename(self, place_form):
        place_form["images"] = [{"alt": "no file"}]
        with pytest.raises(ValidationError):
            PlaceInput.model_validate(place_form)


# ======================================================================
# Contact and coordinates
# ======================================================================


class TestContact:
    @pytest.mark.parametrize("phone", ["081-234-5678", "022-000-0000", "053-295-0020", ""])
    def test_valid_phones(self, phone):
        assert Contact(phone=phone).phone == phone

    @pytest.mark.parametrize("phone", ["0812345678", "181-234-5678", "011-234-5678", "081-2345-678"])
    def test_invalid_phones(self, phone):
        messages = _messages(Contact, {"phone": phone})
        assert messages[0].startswith("รูปแบบหมายเลขโทรศัพท์ไม่ถูกต้อง")

    @pytest.mark.parametrize("url", ["https://example.com", "http://example.com/path?q=1"])
    def test_valid_websites(self, url):
        assert Contact(website=url).website == url

    @pytest.mark.parametrize("url", ["example.com", "ftp://example.com", "https://"])
    def test_invalid_websites(self, url):
        assert _messages(Contact, {"website": url})[0].startswith("รูปแบบ URL เว็บไซต์ไม่ถูกต้อง")

    def test_social_links(self):
        contact = Contact(
            facebook="https://www.facebook.com/some.page",
            instagram="https://instagram.com/some_account/",
        )
        assert contact.facebook.endswith("some.page")

    def test_invalid_social_links(self):
        messages = _messages(Contact, {
            "facebook": "https://fb.com/page",
            "instagram": "https://instagram.com/has space",
        })
        assert len(messages) == 2
        assert messages[0].startswith("รูปแบบลิงก์ Facebook")
        assert messages[1].startswith("รูปแบบลิงก์ Instagram")

    def test_values_are_stripped(self):
        assert Contact(address="  Nimman Soi 7  ").address == "Nimman Soi 7"


class TestCoordinates:
    def test_both_missing_is_fine(self):
        coords = Coordinates.model_validate({"lat": "", "lng": None})
        assert coords.lat is None and coords.lng is None

    def test_pair_required(self):
        assert _messages(Coordinates, {"lat": 18.8}) == [
            "กรุณากรอกพิกัดให้ครบทั้งละติจูดและลองจิจูด"
        ]

    def test_string_numbers_accepted(self):
        coords = Coordinates.model_validate({"lat": "18.79", "lng": "98.98"})
        assert coords.lat == pytest.approx(18.79)

    @pytest.mark.parametrize("lat, lng, prefix", [
        (4.9, 100.0, "ละติจูด"),
        (21.1, 100.0, "ละติจูด"),
        (13.7, 96.9, "ลองจิจูด"),
        (13.7, 106.5, "ลองจิจูด"),
    ])
    def test_outside_thailand(self, lat, lng, prefix):
        assert _messages(Coordinates, {"lat": lat, "lng": lng})[0].startswith(prefix)

    def test_bounds_are_inclusive(self):
        Coordinates(lat=5, lng=106)
        Coordinates(lat=21, lng=97)


# ======================================================================
# CategoryInput
# ======================================================================


class TestCategoryInput:
    def test_valid(self):
        category = CategoryInput.model_validate({"name": {"th": "คาเฟ่", "en": "Cafe"}, "icon": "coffee"})
        assert category.order is None
        assert category.icon == "coffee"

    def test_missing_everything(self):
        assert _messages(CategoryInput, {}) == [
            "ข้อมูลชื่อหมวดหมู่ไม่ถูกต้อง",
            "กรุณาเลือกไอคอน",
        ]

    def test_missing_thai_name(self):
        messages = _messages(CategoryInput, {"name": {"en": "Cafe"}, "icon": "coffee"})
        assert messages == ["กรุณากรอกชื่อหมวดหมู่ภาษาไทย"]

    @pytest.mark.parametrize("order", [0, -1, "abc", True, 1.7, "1.7", float("inf")])
    def test_bad_order(self, order):
        messages = _messages(CategoryInput, {"name": {"th": "ก"}, "icon": "x", "order": order})
        assert messages == ["ลำดับการแสดงต้องเป็นตัวเลขที่มากกว่า 0"]

    @pytest.mark.parametrize("order, expected", [("3", 3), (7, 7), (2.0, 2), ("", None), (None, None)])
    def test_order_coercion(self, order, expected):
        category = CategoryInput.model_validate({"name": {"th": "ก"}, "icon": "x", "order": order})
        assert category.order == expected


# ======================================================================
# StatusChange
# ======================================================================


class TestStatusChange:
    def test_record_uses_from_key(self):
        change = StatusChange(from_="draft", to="published", changedAt="2025-01-01T00:00:00.000Z")
        assert change.to_record() == {
            "from": "draft",
            "to": "published",
            "changedAt": "2025-01-01T00:00:00.000Z",
            "changedBy": None,
        }

    def test_alias_input(self):
        change = StatusChange.model_validate({"from": None, "to": "draft", "changedAt": "x"})
        assert change.from_ is None
