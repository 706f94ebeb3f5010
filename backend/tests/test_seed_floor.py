"""Tests for idempotent menu and table seeding."""

import json
from copy import deepcopy

import pytest
from sqlalchemy import func, select

from teahouse.db.models import CafeTable, MenuItem, Profile
from scripts.seed_floor import DEFAULT_FLOOR_FILE, ensure_admin, load_floor_json, seed_floor

FLOOR = {
    "tables": [1, 2],
    "menu": {
        "tea": [{"name": "Masala chai", "price": 20.0}],
        "snacks": [{"name": "Samosa", "price": 15.5}, {"name": "", "price": 1}],
        "notes": "not a list",
    },
}


def _counts(storage):
    with storage.transaction() as session:
        items = session.execute(select(func.count(MenuItem.id))).scalar_one()
        tables = session.execute(select(func.count(CafeTable.id))).scalar_one()
    return items, tables


def test_seed_creates_items_and_tables(storage):
    with storage.transaction() as session:
        stats = seed_floor(session, FLOOR)
    assert stats == {"items_created": 2, "items_updated": 0, "tables_created": 2}

    with storage.transaction() as session:
        samosa = session.execute(select(MenuItem).where(MenuItem.name == "Samosa")).scalar_one()
        assert samosa.price == 1550
        assert samosa.category == "snacks"


def test_seed_is_idempotent(storage):
    with storage.transaction() as session:
        seed_floor(session, FLOOR)
    with storage.transaction() as session:
        stats = seed_floor(session, FLOOR)
    assert stats == {"items_created": 0, "items_updated": 0, "tables_created": 0}
    assert _counts(storage) == (2, 2)


def test_update_prices_flag(storage):
    with storage.transaction() as session:
        seed_floor(session, FLOOR)

    changed = deepcopy(FLOOR)
    changed["menu"]["tea"][0]["price"] = 22.0
    with storage.transaction() as session:
        assert seed_floor(session, changed)["items_updated"] == 0
    with storage.transaction() as session:
        assert seed_floor(session, changed, update_prices=True)["items_updated"] == 1
        chai = session.execute(select(MenuItem).where(MenuItem.name == "Masala chai")).scalar_one()
        assert chai.price == 2200


def test_ensure_admin_once(storage):
    with storage.transaction() as session:
        assert ensure_admin(session, "owner", "pw") is True
    with storage.transaction() as session:
        assert ensure_admin(session, "owner", "other") is False
        owner = session.execute(select(Profile).where(Profile.username == "owner")).scalar_one()
        assert owner.role == "admin"
        assert owner.verified is True


def test_load_floor_json(tmp_path):
    path = tmp_path / "floor.json"
    path.write_text(json.dumps(FLOOR), encoding="utf-8")
    assert load_floor_json(str(path))["tables"] == [1, 2]

    with pytest.raises(FileNotFoundError):
        load_floor_json(str(tmp_path / "missing.json"))


def test_bundled_floor_file_loads():
    floor = load_floor_json(str(DEFAULT_FLOOR_FILE))
    assert floor["tables"]
    assert "tea" in floor["menu"]
