import os
import sys

import pytest
import pytest_asyncio

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Keep the app module's default store in memory instead of a file in cwd
os.environ.setdefault("APP_DATABASE_URL", "sqlite://")

from teahouse.db import floor_utils, order_utils, staff_utils
from teahouse.db.dependencies import create_access_token, hash_password
from teahouse.db.order_utils import LineItemIn
from teahouse.storage import SQLAlchemyStorage


@pytest.fixture
def storage(tmp_path):
    """File-backed ledger store, schema created with create_all."""
    db_path = tmp_path / "ledger.db"
    storage = SQLAlchemyStorage(f"sqlite:///{db_path}", use_alembic=False)
    yield storage
    storage.close()


@pytest.fixture
def staff(storage):
    """An admin, two verified employees and one unverified employee, as Callers."""
    password_hash = hash_password("secret123")
    with storage.transaction() as session:
        profiles = {
            "admin": staff_utils.create_profile(session, "admin", password_hash, role="admin"),
            "alice": staff_utils.create_profile(session, "alice", password_hash),
            "bob": staff_utils.create_profile(session, "bob", password_hash),
            "carol": staff_utils.create_profile(session, "carol", password_hash),
        }
        profiles["alice"].verified = True
        profiles["bob"].verified = True
        session.flush()
        return {key: staff_utils.caller_for(profile) for key, profile in profiles.items()}


@pytest.fixture
def floor(storage, staff):
    """Menu items and tables; returns their ids."""
    admin = staff["admin"]
    with storage.transaction() as session:
        chai = floor_utils.create_menu_item(session, admin, "Masala chai", "20.00", "tea")
        samosa = floor_utils.create_menu_item(session, admin, "Samosa", "15.50", "snacks")
        thali = floor_utils.create_menu_item(session, admin, "Thali", "50.00", "meals")
        table1 = floor_utils.create_table(session, admin, 1)
        table2 = floor_utils.create_table(session, admin, 2)
        table3 = floor_utils.create_table(session, admin, 3)
    return {
        "chai": chai["id"],
        "samosa": samosa["id"],
        "thali": thali["id"],
        "table1": table1["id"],
        "table2": table2["id"],
        "table3": table3["id"],
    }


@pytest.fixture
def place_order(storage, staff, floor):
    """Factory: create an order and optionally move it to a later status."""

    def _place(caller=None, table="table1", items=None, status=None):
        caller = caller or staff["alice"]
        items = items or [LineItemIn(item_id=floor["chai"], qty=2)]
        with storage.transaction() as session:
            order = order_utils.create_order(session, caller, floor[table], items)
            if status is not None and status != "taken":
                order = order_utils.advance_status(session, caller, order["id"], status)
        return order

    return _place


@pytest.fixture
def auth_headers():
    def _headers(caller):
        token = create_access_token({"sub": str(caller.user_id), "role": caller.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def api_client(storage):
    """Async HTTP client bound to the app with the test ledger store swapped in."""
    import httpx
    from httpx import ASGITransport
    from teahouse.main import app

    original_storage = app.state.storage
    app.state.storage = storage
    try:
        async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
    finally:
        app.state.storage = original_storage
