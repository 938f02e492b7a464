"""
Shared pytest fixtures for the tourism CMS test suite.

Provides:
    - data_dir: an empty temporary data directory (not yet created on disk)
    - repo: a DataRepository over data_dir with English messages
    - rotator / store: the repository's BackupRotator and JSONFileStore
    - sample_place: a valid stored place record
    - place_form: valid admin form data for creating a place
    - seeded_repo: repo with the default categories and three places
    - write_raw: helper that writes arbitrary text into a document
"""

import json
import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Ensure the packages are importable regardless of where pytest is invoked
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from datastore.repository import DataRepository  # noqa: E402


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def data_dir(tmp_path):
    """Return the path of a data directory that does not exist yet."""
    return tmp_path / "data"


@pytest.fixture
def repo(data_dir):
    return DataRepository(data_dir, language="en")


@pytest.fixture
def rotator(repo):
    return repo.rotator


@pytest.fixture
def store(repo):
    return repo.store


@pytest.fixture
def write_raw(data_dir):
    """Return a function that writes *text* verbatim to ``data_dir/<name>``."""
    def _write(name, text):
        data_dir.mkdir(parents=True, exist_ok=True)
        path = data_dir / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def sample_place():
    """Return a valid place record as stored in places.json."""
    return {
        "id": "doi-suthep-0001",
        "name": {
            "th": "วัดพระธาตุดอยสุเทพ",
            "en": "Wat Phra That Doi Suthep",
            "zh": "双龙寺",
            "ja": "ワット・プラタート・ドイステープ",
        },
        "description": {
            "th": "วัดสำคัญบนดอยสุเทพ",
            "en": "Hilltop temple overlooking Chiang Mai",
            "zh": "",
            "ja": "",
        },
        "category": "attraction",
        "images": [{"filename": "doi-suthep.jpg", "alt": "Golden chedi", "featured": True, "order": 0}],
        "contact": {
            "address": "Suthep, Mueang Chiang Mai",
            "phone": "053-295-0020",
            "website": "https://example.org/doi-suthep",
            "facebook": "",
            "instagram": "",
            "coordinates": {"lat": 18.8048, "lng": 98.9216},
        },
        "hours": "06:00-18:00",
        "priceRange": "30 THB",
        "status": "published",
        "featured": False,
        "statusHistory": [],
        "createdAt": "2025-01-01T00:00:00.000Z",
        "updatedAt": "2025-01-01T00:00:00.000Z",
        "createdBy": "admin-001",
    }


@pytest.fixture
def place_form():
    """Return valid admin form data for a new place."""
    return {
        "name": {"th": "ข้าวซอยแม่สาย", "en": "Mae Sai Khao Soi"},
        "description": {"th": "ร้านข้าวซอยเก่าแก่", "en": "Old-school khao soi shop"},
        "category": "restaurant",
        "contact": {
            "phone": "081-234-5678",
            "website": "https://khaosoi.example.com",
            "facebook": "https://facebook.com/maesaikhaosoi",
            "instagram": "https://instagram.com/maesai.khaosoi",
            "coordinates": {"lat": 18.79, "lng": 98.98},
        },
        "hours": "09:00-16:00",
        "priceRange": "50-80 THB",
        "tags": ["noodles", "local"],
    }


@pytest.fixture
def seeded_repo(repo, sample_place):
    """Repo holding the default categories and three places.

    - doi-suthep-0001: published attraction (not featured)
    - night-bazaar-0002: published attraction, featured
    - hidden-cafe-0003: draft restaurant
    """
    categories = repo.get_categories()["data"]
    assert repo.save_categories(categories)["success"]

    bazaar = json.loads(json.dumps(sample_place))
    bazaar.update({
        "id": "night-bazaar-0002",
        "name": {"th": "ไนท์บาซาร์", "en": "Night Bazaar", "zh": "", "ja": ""},
        "description": {"th": "ตลาดกลางคืน", "en": "Evening market", "zh": "", "ja": ""},
        "featured": True,
        "tags": ["market", "shopping"],
        "createdAt": "2025-02-01T00:00:00.000Z",
        "updatedAt": "2025-02-01T00:00:00.000Z",
    })
    cafe = json.loads(json.dumps(sample_place))
    cafe.update({
        "id": "hidden-cafe-0003",
        "name": {"th": "คาเฟ่ลับ", "en": "Hidden Cafe", "zh": "", "ja": ""},
        "description": {"th": "ร้านกาแฟในซอย", "en": "Coffee in a side street", "zh": "", "ja": ""},
        "category": "restaurant",
        "status": "draft",
        "createdAt": "2025-03-01T00:00:00.000Z",
        "updatedAt": "2025-03-01T00:00:00.000Z",
    })
    assert repo.save_places([sample_place, bazaar, cafe])["success"]
    return repo
