"""
Order lifecycle: creation, content edits and kitchen status moves.

Status only moves forward through ``taken -> prepared -> delivered -> paid``;
``paid`` is reachable solely through payment settlement (see payment_utils).
All functions work inside the caller's transaction: they flush, never commit.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from teahouse.db.audit import record_audit
from teahouse.db.models import CafeTable, MenuItem, Order, OrderItem, ORDER_STATUSES
from teahouse.errors import NotFoundError, StateError, ValidationError
from teahouse.policy import Caller, Operation, ensure_allowed
from teahouse.utils.money import Amount, from_cents, to_decimal, to_cents
from teahouse.utils.time_utils import iso, now_local_naive

logger = logging.getLogger(__name__)

STATUS_RANK = {status: rank for rank, status in enumerate(ORDER_STATUSES)}

# Largest accepted gap between a caller-supplied total and the line items, in cents
TOTAL_TOLERANCE_CENTS = 1


class LineItemIn(BaseModel):
    """Requested line: a menu item reference and a quantity."""

    item_id: int
    qty: int = Field(..., ge=1)


def lock_order(session: Session, order_id: int) -> Order:
    """Load an order holding a row lock until the transaction ends."""
    stmt = select(Order).where(Order.id == order_id).with_for_update()
    order = session.execute(stmt).scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order", order_id)
    return order


def _lock_table(session: Session, table_id: int) -> CafeTable:
    stmt = select(CafeTable).where(CafeTable.id == table_id).with_for_update()
    table = session.execute(stmt).scalar_one_or_none()
    if table is None:
        raise NotFoundError("Table", table_id)
    return table


def _snapshot_items(
    session: Session,
    items: List[LineItemIn],
    existing: Optional[List[OrderItem]] = None,
) -> List[OrderItem]:
    """
    Build line items with name and unit price captured now.

    Items already on the order keep the snapshot they were taken with, so
    later menu price changes never alter an existing order.
    """
    if not items:
        raise ValidationError("NoItems", "An order needs at least one item")

    previous = {line.menu_item_id: line for line in existing or [] if line.menu_item_id is not None}
    lines = []
    for entry in items:
        if entry.qty < 1:
            raise ValidationError("InvalidQuantity", "Quantity must be at least 1", item_id=entry.item_id, qty=entry.qty)

        known = previous.get(entry.item_id)
        if known is not None:
            name, unit_price = known.name, known.unit_price
        else:
            menu_item = session.get(MenuItem, entry.item_id)
            if menu_item is None or not menu_item.active:
                raise NotFoundError("Menu item", entry.item_id)
            name, unit_price = menu_item.name, menu_item.price

        lines.append(OrderItem(menu_item_id=entry.item_id, name=name, qty=entry.qty, unit_price=unit_price))
    return lines


def _check_target_status(current: str, target: str, allow_same: bool = False) -> None:
    if target not in STATUS_RANK:
        raise StateError("InvalidTransition", f"Unknown order status '{target}'", status=target)
    if target == "paid":
        raise StateError("InvalidTransition", "Orders become paid only through payment settlement", status=target)
    if STATUS_RANK[target] < STATUS_RANK[current] or (target == current and not allow_same):
        raise StateError(
            "InvalidTransition",
            f"Cannot move order from '{current}' to '{target}'",
            current=current,
            status=target,
        )


def items_payload(lines: List[OrderItem]) -> List[Dict[str, Any]]:
    return [
        {
            "item_id": line.menu_item_id,
            "name": line.name,
            "qty": line.qty,
            "unit_price": str(from_cents(line.unit_price)),
        }
        for line in lines
    ]


def order_to_dict(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "table_id": order.table_id,
        "table_number": order.table.table_number if order.table is not None else None,
        "created_by_user_id": order.created_by_user_id,
        "status": order.status,
        "payment_method": order.payment_method,
        "total_price": from_cents(order.total_price),
        "items": [
            {
                "id": line.id,
                "item_id": line.menu_item_id,
                "name": line.name,
                "qty": line.qty,
                "unit_price": from_cents(line.unit_price),
                "line_total": from_cents(line.line_total),
            }
            for line in order.items
        ],
        "created_at": iso(order.created_at),
        "updated_at": iso(order.updated_at),
    }


def create_order(session: Session, caller: Caller, table_id: int, items: List[LineItemIn]) -> Dict[str, Any]:
    """
    Create an order in status ``taken`` and mark its table occupied.

    Both writes happen in the caller's transaction, so an order never exists
    without its table being occupied and vice versa.

    Raises:
        ValidationError: NoItems / InvalidQuantity
        NotFoundError: unknown table or menu item
        StateError: TableOccupied
    """
    ensure_allowed(caller, Operation.CREATE_ORDER)
    lines = _snapshot_items(session, items)

    table = _lock_table(session, table_id)
    if table.status != "empty":
        raise StateError("TableOccupied", f"Table {table.table_number} is occupied", table_id=table.id)

    now = now_local_naive()
    order = Order(
        table=table,
        created_by_user_id=caller.user_id,
        status="taken",
        payment_method="none",
        total_price=sum(line.line_total for line in lines),
        created_at=now,
        updated_at=now,
    )
    order.items = lines
    session.add(order)
    table.status = "occupied"
    session.flush()

    record_audit(
        session,
        "create_order",
        "orders",
        order.id,
        {"table_id": table.id, "items": items_payload(lines), "total_price": str(order.total)},
        caller.user_id,
    )
    logger.info("Order %s created on table %s by user %s (total %s)", order.id, table.table_number, caller.user_id, order.total)
    return order_to_dict(order)


def edit_order(
    session: Session,
    caller: Caller,
    order_id: int,
    items: List[LineItemIn],
    total_price: Amount,
    status: Optional[str] = None,
    table_id: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Replace an order's line items, optionally moving its status and table.

    Checks run in order, first failure wins: NotFound, OrderFinalized,
    NotOwner, TooLateToEdit, InvalidAmount. The stored total is always
    re-derived from the line items; ``total_price`` from the caller must be
    non-negative and agree with it.

    A status override may stay put or move forward but never to ``paid``.
    Moving to another table requires that table to be empty and releases the
    previous one.
    """
    ensure_allowed(caller, Operation.EDIT_ORDER)
    order = lock_order(session, order_id)
    ensure_allowed(caller, Operation.EDIT_ORDER, order)

    try:
        claimed = to_decimal(total_price)
    except ValueError:
        raise ValidationError("InvalidAmount", "Total price is not a number", total_price=str(total_price))
    if claimed < 0:
        raise ValidationError("InvalidAmount", "Total price cannot be negative", total_price=str(claimed))

    lines = _snapshot_items(session, items, existing=order.items)
    derived = sum(line.line_total for line in lines)
    if abs(to_cents(claimed) - derived) > TOTAL_TOLERANCE_CENTS:
        raise ValidationError(
            "InvalidAmount",
            "Total price does not match the line items",
            total_price=str(claimed),
            expected=str(from_cents(derived)),
        )

    new_status = order.status
    if status is not None:
        _check_target_status(order.status, status, allow_same=True)
        new_status = status

    if table_id is not None and table_id != order.table_id:
        # lock both tables in id order
        involved = sorted(tid for tid in (order.table_id, table_id) if tid is not None)
        locked = {tid: _lock_table(session, tid) for tid in involved}
        new_table = locked[table_id]
        if new_table.status != "empty":
            raise StateError("TableOccupied", f"Table {new_table.table_number} is occupied", table_id=new_table.id)
        if order.table_id is not None:
            locked[order.table_id].status = "empty"
        new_table.status = "occupied"
        order.table = new_table

    order.items = lines
    order.total_price = derived
    order.status = new_status
    order.updated_at = now_local_naive()
    session.flush()

    record_audit(
        session,
        "edit_order",
        "orders",
        order.id,
        {"items": items_payload(lines), "total_price": str(order.total), "status": new_status, "table_id": order.table_id},
        caller.user_id,
    )
    logger.info("Order %s edited by user %s (status %s, total %s)", order.id, caller.user_id, new_status, order.total)
    return order_to_dict(order)


def advance_status(session: Session, caller: Caller, order_id: int, new_status: str) -> Dict[str, Any]:
    """
    Move an order forward in the kitchen flow (e.g. taken -> prepared).

    Any verified staff member may advance any order. Not audited: this is
    the high-frequency floor action.
    """
    ensure_allowed(caller, Operation.ADVANCE_STATUS)
    order = lock_order(session, order_id)
    ensure_allowed(caller, Operation.ADVANCE_STATUS, order)
    _check_target_status(order.status, new_status)

    previous = order.status
    order.status = new_status
    order.updated_at = now_local_naive()
    session.flush()
    logger.info("Order %s moved %s -> %s by user %s", order.id, previous, new_status, caller.user_id)
    return order_to_dict(order)


def get_order(session: Session, caller: Caller, order_id: int) -> Dict[str, Any]:
    ensure_allowed(caller, Operation.VIEW_FLOOR)
    order = session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order", order_id)
    return order_to_dict(order)


def list_orders(session: Session, caller: Caller, status: Optional[str] = None) -> List[Dict[str, Any]]:
    """List orders newest first, optionally filtered by status."""
    ensure_allowed(caller, Operation.VIEW_FLOOR)
    stmt = select(Order).options(selectinload(Order.items), selectinload(Order.table)).order_by(Order.id.desc())
    if status is not None:
        stmt = stmt.where(Order.status == status)
    return [order_to_dict(order) for order in session.execute(stmt).scalars().all()]
