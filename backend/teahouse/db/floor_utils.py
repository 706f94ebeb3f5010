"""Menu and table management for the floor."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from teahouse.db.audit import record_audit
from teahouse.db.models import CafeTable, MenuItem, Order
from teahouse.errors import NotFoundError, StateError, ValidationError
from teahouse.policy import Caller, Operation, ensure_allowed
from teahouse.utils.money import Amount, from_cents, to_cents, to_decimal

logger = logging.getLogger(__name__)


# ---------- Menu ----------

def menu_item_to_dict(item: MenuItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "price": from_cents(item.price),
        "category": item.category,
        "active": item.active,
    }


def _price_cents(price: Amount) -> int:
    try:
        value = to_decimal(price)
    except ValueError:
        raise ValidationError("InvalidAmount", "Price is not a number", price=str(price))
    if value < 0:
        raise ValidationError("InvalidAmount", "Price cannot be negative", price=str(value))
    return to_cents(value)


def list_menu_items(session: Session, caller: Caller, include_inactive: bool = False) -> List[Dict[str, Any]]:
    ensure_allowed(caller, Operation.MANAGE_MENU if include_inactive else Operation.VIEW_FLOOR)
    stmt = select(MenuItem).order_by(MenuItem.category, MenuItem.name)
    if not include_inactive:
        stmt = stmt.where(MenuItem.active.is_(True))
    return [menu_item_to_dict(item) for item in session.execute(stmt).scalars().all()]


def create_menu_item(
    session: Session, caller: Caller, name: str, price: Amount, category: Optional[str] = None
) -> Dict[str, Any]:
    ensure_allowed(caller, Operation.MANAGE_MENU)
    name = (name or "").strip()
    if not name:
        raise ValidationError("InvalidName", "Menu item name is required")
    item = MenuItem(name=name, price=_price_cents(price), category=category, active=True)
    session.add(item)
    session.flush()
    record_audit(session, "create_menu_item", "menu_items", item.id, {"name": name, "price": str(from_cents(item.price))}, caller.user_id)
    return menu_item_to_dict(item)


def update_menu_item(session: Session, caller: Caller, item_id: int, **changes: Any) -> Dict[str, Any]:
    """
    Update name, price, category or active flag of a menu item.

    Orders already holding this item keep their captured name and price.
    """
    ensure_allowed(caller, Operation.MANAGE_MENU)
    item = session.get(MenuItem, item_id)
    if item is None:
        raise NotFoundError("Menu item", item_id)

    applied = {}
    if changes.get("name") is not None:
        name = changes["name"].strip()
        if not name:
            raise ValidationError("InvalidName", "Menu item name is required")
        item.name = applied["name"] = name
    if changes.get("price") is not None:
        item.price = _price_cents(changes["price"])
        applied["price"] = str(from_cents(item.price))
    if changes.get("category") is not None:
        item.category = applied["category"] = changes["category"]
    if changes.get("active") is not None:
        item.active = applied["active"] = bool(changes["active"])

    session.flush()
    record_audit(session, "update_menu_item", "menu_items", item.id, applied, caller.user_id)
    return menu_item_to_dict(item)


def delete_menu_item(session: Session, caller: Caller, item_id: int) -> None:
    """Soft delete: the item leaves the menu but stays referenced by past orders."""
    ensure_allowed(caller, Operation.MANAGE_MENU)
    item = session.get(MenuItem, item_id)
    if item is None:
        raise NotFoundError("Menu item", item_id)
    item.active = False
    session.flush()
    record_audit(session, "delete_menu_item", "menu_items", item.id, {"name": item.name}, caller.user_id)


# ---------- Tables ----------

def table_to_dict(table: CafeTable) -> Dict[str, Any]:
    return {"id": table.id, "table_number": table.table_number, "status": table.status}


def list_tables(session: Session, caller: Caller) -> List[Dict[str, Any]]:
    ensure_allowed(caller, Operation.VIEW_FLOOR)
    stmt = select(CafeTable).order_by(CafeTable.table_number)
    return [table_to_dict(table) for table in session.execute(stmt).scalars().all()]


def create_table(session: Session, caller: Caller, table_number: int) -> Dict[str, Any]:
    ensure_allowed(caller, Operation.MANAGE_TABLES)
    if table_number is None or table_number < 1:
        raise ValidationError("InvalidTableNumber", "Table number must be a positive integer", table_number=table_number)

    existing = session.execute(select(CafeTable).where(CafeTable.table_number == table_number)).scalar_one_or_none()
    if existing is not None:
        raise StateError("TableExists", f"Table {table_number} already exists", table_number=table_number)

    table = CafeTable(table_number=table_number, status="empty")
    session.add(table)
    try:
        session.flush()
    except IntegrityError:
        raise StateError("TableExists", f"Table {table_number} already exists", table_number=table_number)
    record_audit(session, "create_table", "cafe_tables", table.id, {"table_number": table_number}, caller.user_id)
    return table_to_dict(table)


def delete_table(session: Session, caller: Caller, table_id: int) -> int:
    """
    Delete a table, keeping its orders with their table reference cleared.

    Returns the number of orders that were detached.
    """
    ensure_allowed(caller, Operation.MANAGE_TABLES)
    table = session.get(CafeTable, table_id)
    if table is None:
        raise NotFoundError("Table", table_id)

    detached = session.execute(
        update(Order).where(Order.table_id == table_id).values(table_id=None)
    ).rowcount
    record_audit(
        session,
        "delete_table",
        "cafe_tables",
        table.id,
        {"table_number": table.table_number, "detached_orders": detached},
        caller.user_id,
    )
    session.delete(table)
    session.flush()
    logger.info("Table %s deleted, %s orders detached", table.table_number, detached)
    return detached
