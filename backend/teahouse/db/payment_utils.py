"""
Payment settlement: the only path that turns a delivered order into ``paid``.

Each settlement runs inside one transaction with the order row locked:
payment record(s), order status, daily revenue aggregate, table release and
the audit record commit together or not at all. A second settlement of the
same order waits for the first to commit, then fails with ``AlreadyPaid``.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from teahouse.db.audit import record_audit
from teahouse.db.models import CafeTable, Order, Payment, PAYMENT_METHODS
from teahouse.db.order_utils import lock_order
from teahouse.db.revenue_utils import add_to_daily_revenue
from teahouse.errors import NotFoundError, StateError, ValidationError
from teahouse.policy import Caller, Operation, ensure_allowed
from teahouse.utils.money import Amount, from_cents, to_cents, to_decimal
from teahouse.utils.time_utils import iso, now_local_naive

logger = logging.getLogger(__name__)

# Absolute gap tolerated between a split payment and the order total, in cents
SPLIT_TOLERANCE_CENTS = 1


def _lock_settleable_order(session: Session, order_id: int) -> Order:
    order = lock_order(session, order_id)
    if order.status == "paid":
        raise StateError("AlreadyPaid", f"Order {order_id} is already paid", order_id=order_id)
    if order.status != "delivered":
        raise StateError(
            "NotYetDelivered",
            f"Order {order_id} must be delivered before payment",
            order_id=order_id,
            status=order.status,
        )
    return order


def _release_table(session: Session, order: Order) -> None:
    if order.table_id is None:
        return
    stmt = select(CafeTable).where(CafeTable.id == order.table_id).with_for_update()
    table = session.execute(stmt).scalar_one_or_none()
    if table is not None:
        table.status = "empty"


def _parse_amount(value: Amount, field: str):
    try:
        return to_decimal(value)
    except ValueError:
        raise ValidationError("InvalidAmount", f"{field} is not a number", **{field: str(value)})


def confirm_payment(session: Session, caller: Caller, order_id: int, method: str) -> Dict[str, Any]:
    """
    Settle a delivered order in full with one method (cash or online).

    Returns:
        {"order_id", "amount", "method"}

    Raises:
        AuthorizationError: caller is not an admin
        NotFoundError: unknown order
        StateError: AlreadyPaid / NotYetDelivered
        ValidationError: InvalidMethod
    """
    ensure_allowed(caller, Operation.SETTLE_PAYMENT)
    order = _lock_settleable_order(session, order_id)
    if method not in PAYMENT_METHODS:
        raise ValidationError("InvalidMethod", "Payment method must be cash or online", method=method)

    now = now_local_naive()
    amount = order.total_price
    session.add(Payment(order_id=order.id, method=method, amount=amount, recorded_by=caller.user_id, created_at=now))

    order.status = "paid"
    order.payment_method = method
    order.updated_at = now

    add_to_daily_revenue(
        session,
        now.date(),
        cash_cents=amount if method == "cash" else 0,
        online_cents=amount if method == "online" else 0,
    )
    _release_table(session, order)
    session.flush()

    record_audit(
        session,
        "confirm_payment",
        "orders",
        order.id,
        {"method": method, "amount": str(from_cents(amount))},
        caller.user_id,
    )
    logger.info("Order %s paid by %s: %s (admin %s)", order.id, method, from_cents(amount), caller.user_id)
    return {"order_id": order.id, "amount": from_cents(amount), "method": method}


def confirm_split_payment(
    session: Session,
    caller: Caller,
    order_id: int,
    cash_amount: Amount,
    online_amount: Amount,
) -> Dict[str, Any]:
    """
    Settle a delivered order with a cash part and an online part.

    The parts must be non-negative, add up to more than zero and match the
    order total within one cent. A zero part produces no payment record, so
    a split with one empty side leaves exactly one record. The order's
    payment method is ``split`` either way.

    Returns:
        {"order_id", "cash_amount", "online_amount", "total_amount"}
    """
    ensure_allowed(caller, Operation.SETTLE_PAYMENT)
    order = _lock_settleable_order(session, order_id)

    cash = _parse_amount(cash_amount, "cash_amount")
    online = _parse_amount(online_amount, "online_amount")
    if cash < 0 or online < 0:
        raise ValidationError(
            "InvalidAmount",
            "Payment amounts cannot be negative",
            cash_amount=str(cash),
            online_amount=str(online),
        )

    cash_cents, online_cents = to_cents(cash), to_cents(online)
    total_cents = cash_cents + online_cents
    if total_cents <= 0:
        raise ValidationError("ZeroPayment", "Total payment amount must be greater than zero")
    if abs(total_cents - order.total_price) > SPLIT_TOLERANCE_CENTS:
        raise ValidationError(
            "AmountMismatch",
            f"Total payment amount ({from_cents(total_cents)}) does not match order total ({order.total})",
            payment_total=str(from_cents(total_cents)),
            order_total=str(order.total),
        )

    now = now_local_naive()
    for method, cents in (("cash", cash_cents), ("online", online_cents)):
        if cents > 0:
            session.add(Payment(order_id=order.id, method=method, amount=cents, recorded_by=caller.user_id, created_at=now))

    order.status = "paid"
    order.payment_method = "split"
    order.updated_at = now

    add_to_daily_revenue(session, now.date(), cash_cents=cash_cents, online_cents=online_cents)
    _release_table(session, order)
    session.flush()

    record_audit(
        session,
        "confirm_split_payment",
        "orders",
        order.id,
        {
            "method": "split",
            "cash_amount": str(cash),
            "online_amount": str(online),
            "total_amount": str(from_cents(total_cents)),
        },
        caller.user_id,
    )
    logger.info(
        "Order %s paid split: cash %s + online %s (admin %s)", order.id, cash, online, caller.user_id
    )
    return {
        "order_id": order.id,
        "cash_amount": cash,
        "online_amount": online,
        "total_amount": from_cents(total_cents),
    }


def list_payments(session: Session, caller: Caller, order_id: int) -> List[Dict[str, Any]]:
    ensure_allowed(caller, Operation.VIEW_REVENUE)
    if session.get(Order, order_id) is None:
        raise NotFoundError("Order", order_id)
    stmt = select(Payment).where(Payment.order_id == order_id).order_by(Payment.id)
    return [
        {
            "id": payment.id,
            "order_id": payment.order_id,
            "method": payment.method,
            "amount": from_cents(payment.amount),
            "recorded_by": payment.recorded_by,
            "created_at": iso(payment.created_at),
        }
        for payment in session.execute(stmt).scalars().all()
    ]
