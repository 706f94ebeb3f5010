"""
Revenue aggregation and expenses.

Two revenue sources exist side by side:
- ``daily_revenue`` rows, bumped incrementally by every settlement;
- the payment ledger itself, summed on demand by ``get_daily_summary``.
They are not reconciled against each other.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import case, distinct, func, select
from sqlalchemy.orm import Session

from teahouse.db.audit import record_audit
from teahouse.db.models import DailyRevenue, Expense, Payment
from teahouse.errors import NotFoundError, ValidationError
from teahouse.policy import Caller, Operation, ensure_allowed
from teahouse.utils.money import Amount, from_cents, to_cents, to_decimal
from teahouse.utils.time_utils import day_bounds, iso, now_local_naive

logger = logging.getLogger(__name__)


def _dialect_insert(session: Session):
    name = session.get_bind().dialect.name
    if name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    if name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    return None


def add_to_daily_revenue(session: Session, day: date, cash_cents: int, online_cents: int) -> None:
    """
    Add settlement deltas to the aggregate row for ``day``, creating it if needed.

    Each method's total only ever grows by its own delta; a zero delta leaves
    it untouched.
    """
    insert = _dialect_insert(session)
    if insert is not None:
        table = DailyRevenue.__table__
        stmt = insert(table).values(revenue_date=day, cash_total=cash_cents, online_total=online_cents)
        stmt = stmt.on_conflict_do_update(
            index_elements=["revenue_date"],
            set_={
                "cash_total": table.c.cash_total + stmt.excluded.cash_total,
                "online_total": table.c.online_total + stmt.excluded.online_total,
            },
        )
        session.execute(stmt)
        return

    stmt = select(DailyRevenue).where(DailyRevenue.revenue_date == day).with_for_update()
    row = session.execute(stmt).scalar_one_or_none()
    if row is None:
        session.add(DailyRevenue(revenue_date=day, cash_total=cash_cents, online_total=online_cents))
    else:
        row.cash_total += cash_cents
        row.online_total += online_cents
    session.flush()


def get_daily_revenue(session: Session, caller: Caller, day: date) -> Dict[str, Any]:
    """Return the incrementally maintained aggregate for ``day`` (zeros if none)."""
    ensure_allowed(caller, Operation.VIEW_REVENUE)
    row = session.execute(select(DailyRevenue).where(DailyRevenue.revenue_date == day)).scalar_one_or_none()
    cash, online = (row.cash_total, row.online_total) if row is not None else (0, 0)
    return {
        "date": day,
        "cash_total": from_cents(cash),
        "online_total": from_cents(online),
        "total_revenue": from_cents(cash + online),
    }


def get_daily_summary(session: Session, caller: Caller, day: date) -> Dict[str, Any]:
    """
    Recompute a day's figures from the payment ledger and expenses.

    Returns total/cash/online revenue, total expenses, net profit and the
    number of distinct orders paid that day.
    """
    ensure_allowed(caller, Operation.VIEW_REVENUE)
    start, end = day_bounds(day)

    revenue_stmt = (
        select(
            func.coalesce(func.sum(Payment.amount), 0),
            func.coalesce(func.sum(case((Payment.method == "cash", Payment.amount), else_=0)), 0),
            func.coalesce(func.sum(case((Payment.method == "online", Payment.amount), else_=0)), 0),
            func.count(distinct(Payment.order_id)),
        )
        .where(Payment.created_at >= start)
        .where(Payment.created_at < end)
    )
    total, cash, online, order_count = session.execute(revenue_stmt).one()

    expense_stmt = (
        select(func.coalesce(func.sum(Expense.amount), 0))
        .where(Expense.created_at >= start)
        .where(Expense.created_at < end)
    )
    expenses = session.execute(expense_stmt).scalar_one()

    return {
        "date": day,
        "total_revenue": from_cents(total),
        "cash_revenue": from_cents(cash),
        "online_revenue": from_cents(online),
        "total_expenses": from_cents(expenses),
        "net_profit": from_cents(total - expenses),
        "order_count": order_count,
    }


def expense_to_dict(expense: Expense) -> Dict[str, Any]:
    return {
        "id": expense.id,
        "title": expense.title,
        "amount": from_cents(expense.amount),
        "recorded_by": expense.recorded_by,
        "created_at": iso(expense.created_at),
    }


def add_expense(session: Session, caller: Caller, title: str, amount: Amount) -> Dict[str, Any]:
    ensure_allowed(caller, Operation.MANAGE_EXPENSES)
    title = (title or "").strip()
    if not title:
        raise ValidationError("InvalidTitle", "Expense title is required")
    try:
        value = to_decimal(amount)
    except ValueError:
        raise ValidationError("InvalidAmount", "Expense amount is not a number", amount=str(amount))
    if value < 0:
        raise ValidationError("InvalidAmount", "Expense amount cannot be negative", amount=str(value))

    expense = Expense(title=title, amount=to_cents(value), recorded_by=caller.user_id, created_at=now_local_naive())
    session.add(expense)
    session.flush()
    record_audit(session, "add_expense", "expenses", expense.id, {"title": title, "amount": str(value)}, caller.user_id)
    logger.info("Expense %s recorded: %s %s", expense.id, title, value)
    return expense_to_dict(expense)


def list_expenses(session: Session, caller: Caller, day: Optional[date] = None) -> List[Dict[str, Any]]:
    ensure_allowed(caller, Operation.MANAGE_EXPENSES)
    stmt = select(Expense).order_by(Expense.created_at.desc())
    if day is not None:
        start, end = day_bounds(day)
        stmt = stmt.where(Expense.created_at >= start).where(Expense.created_at < end)
    return [expense_to_dict(expense) for expense in session.execute(stmt).scalars().all()]


def delete_expense(session: Session, caller: Caller, expense_id: int) -> None:
    ensure_allowed(caller, Operation.MANAGE_EXPENSES)
    expense = session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError("Expense", expense_id)
    record_audit(
        session,
        "delete_expense",
        "expenses",
        expense.id,
        {"title": expense.title, "amount": str(from_cents(expense.amount))},
        caller.user_id,
    )
    session.delete(expense)
    session.flush()
    logger.info("Expense %s deleted by user %s", expense_id, caller.user_id)
