"""
Seed menu items and tables from floor.json, and optionally the first admin.

Seeding is idempotent: menu items are matched by name and tables by number,
so rerunning the script only adds what is missing. Existing prices are left
alone unless --update-prices is given.

Usage:
    python -m scripts.seed_floor [--floor-file data/floor.json] [--admin-username owner --admin-password ...]

Environment:
    APP_DATABASE_URL: Database connection (default: sqlite:///teahouse.db)
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_FLOOR_FILE = Path(__file__).resolve().parent.parent / "data" / "floor.json"


def load_floor_json(floor_file: str) -> Dict[str, Any]:
    if not os.path.exists(floor_file):
        raise FileNotFoundError(f"Floor file not found: {floor_file}")

    with open(floor_file, 'r', encoding='utf-8') as f:
        floor = json.load(f)

    logger.info(f"Loaded floor from {floor_file} with {len(floor.get('menu', {}))} menu categories")
    return floor


def seed_floor(session: Session, floor: Dict[str, Any], update_prices: bool = False) -> Dict[str, int]:
    """
    Insert missing menu items and tables.

    Args:
        session: SQLAlchemy session inside an open transaction
        floor: {"tables": [numbers], "menu": {category: [{"name", "price"}]}}
        update_prices: overwrite price and category of items that already exist

    Returns:
        {'items_created', 'items_updated', 'tables_created'}
    """
    from teahouse.db.models import CafeTable, MenuItem
    from teahouse.utils.money import to_cents

    stats = {'items_created': 0, 'items_updated': 0, 'tables_created': 0}

    for category, items in floor.get("menu", {}).items():
        if not isinstance(items, list):
            logger.warning(f"Skipping menu section '{category}' - not a list")
            continue
        for entry in items:
            name = (entry.get("name") or "").strip()
            if not name:
                logger.warning(f"Skipping unnamed item in '{category}'")
                continue
            price = to_cents(entry.get("price", 0))

            existing = session.execute(select(MenuItem).where(MenuItem.name == name)).scalars().first()
            if existing is None:
                session.add(MenuItem(name=name, price=price, category=category, active=True))
                stats['items_created'] += 1
            elif update_prices and (existing.price != price or existing.category != category):
                existing.price = price
                existing.category = category
                stats['items_updated'] += 1

    known_tables = set(session.execute(select(CafeTable.table_number)).scalars().all())
    for number in floor.get("tables", []):
        if number in known_tables:
            continue
        session.add(CafeTable(table_number=int(number), status="empty"))
        known_tables.add(number)
        stats['tables_created'] += 1

    session.flush()
    return stats


def ensure_admin(session: Session, username: str, password: str, name: Optional[str] = None) -> bool:
    """Create an admin profile unless the username is taken. Returns True if created."""
    from teahouse.db import staff_utils
    from teahouse.db.dependencies import hash_password
    from teahouse.db.models import Profile

    if session.execute(select(Profile).where(Profile.username == username)).scalars().first():
        logger.info(f"Profile '{username}' already exists, not creating admin")
        return False
    staff_utils.create_profile(session, username, hash_password(password), role="admin", name=name)
    logger.info(f"Created admin '{username}'")
    return True


def main():
    parser = argparse.ArgumentParser(description="Seed menu items and tables")
    parser.add_argument("--floor-file", default=str(DEFAULT_FLOOR_FILE), help="Path to floor.json")
    parser.add_argument("--update-prices", action="store_true", help="Overwrite prices of existing items")
    parser.add_argument("--admin-username", help="Create this admin account if missing")
    parser.add_argument("--admin-password", help="Password for --admin-username")
    args = parser.parse_args()

    if args.admin_username and not args.admin_password:
        parser.error("--admin-password is required with --admin-username")

    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
    from teahouse.storage import SQLAlchemyStorage

    database_url = os.getenv("APP_DATABASE_URL", "sqlite:///teahouse.db")
    logger.info(f"Using database: {database_url}")

    floor = load_floor_json(args.floor_file)
    storage = SQLAlchemyStorage(database_url)
    try:
        with storage.transaction() as session:
            stats = seed_floor(session, floor, update_prices=args.update_prices)
            if args.admin_username:
                ensure_admin(session, args.admin_username, args.admin_password)
    finally:
        storage.close()

    logger.info(
        f"Seeding complete: {stats['items_created']} items created, "
        f"{stats['items_updated']} updated, {stats['tables_created']} tables created"
    )


if __name__ == "__main__":
    main()
