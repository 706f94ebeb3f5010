"""Tests for daily revenue reads and expenses."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from teahouse.db import payment_utils, revenue_utils
from teahouse.db.audit import list_audit_records
from teahouse.db.order_utils import LineItemIn
from teahouse.errors import AuthorizationError, NotFoundError, ValidationError

NEW_YEAR = date(2024, 1, 1)


class Clock:
    """Settable stand-in for now_local_naive."""

    def __init__(self, moment):
        self.moment = moment

    def __call__(self):
        return self.moment


@pytest.fixture
def clock(monkeypatch):
    clock = Clock(datetime(2024, 1, 1, 10, 0))
    monkeypatch.setattr(payment_utils, "now_local_naive", clock)
    monkeypatch.setattr(revenue_utils, "now_local_naive", clock)
    return clock


def test_summary_for_a_day_with_one_cash_payment(storage, staff, floor, place_order, clock):
    order = place_order(items=[LineItemIn(item_id=floor["thali"], qty=1)], status="delivered")
    with storage.transaction() as session:
        payment_utils.confirm_payment(session, staff["admin"], order["id"], "cash")

    with storage.transaction() as session:
        summary = revenue_utils.get_daily_summary(session, staff["admin"], NEW_YEAR)

    assert summary == {
        "date": NEW_YEAR,
        "total_revenue": Decimal("50.00"),
        "cash_revenue": Decimal("50.00"),
        "online_revenue": Decimal("0.00"),
        "total_expenses": Decimal("0.00"),
        "net_profit": Decimal("50.00"),
        "order_count": 1,
    }


def test_split_order_counted_once(storage, staff, floor, place_order, clock):
    order = place_order(items=[LineItemIn(item_id=floor["thali"], qty=2)], status="delivered")
    with storage.transaction() as session:
        payment_utils.confirm_split_payment(session, staff["admin"], order["id"], 60, 40)

    with storage.transaction() as session:
        summary = revenue_utils.get_daily_summary(session, staff["admin"], NEW_YEAR)
    assert summary["order_count"] == 1
    assert summary["cash_revenue"] == Decimal("60.00")
    assert summary["online_revenue"] == Decimal("40.00")
    assert summary["total_revenue"] == Decimal("100.00")


def test_expenses_reduce_net_profit(storage, staff, floor, place_order, clock):
    order = place_order(items=[LineItemIn(item_id=floor["thali"], qty=2)], status="delivered")
    with storage.transaction() as session:
        payment_utils.confirm_payment(session, staff["admin"], order["id"], "online")
        revenue_utils.add_expense(session, staff["admin"], "Milk", "12.50")
        revenue_utils.add_expense(session, staff["admin"], "Gas cylinder", 30)

    with storage.transaction() as session:
        summary = revenue_utils.get_daily_summary(session, staff["admin"], NEW_YEAR)
    assert summary["total_expenses"] == Decimal("42.50")
    assert summary["net_profit"] == Decimal("57.50")


def test_days_are_separate(storage, staff, floor, place_order, clock):
    first = place_order(items=[LineItemIn(item_id=floor["chai"], qty=1)], status="delivered")
    second = place_order(table="table2", items=[LineItemIn(item_id=floor["samosa"], qty=1)], status="delivered")

    clock.moment = datetime(2024, 1, 1, 23, 59)
    with storage.transaction() as session:
        payment_utils.confirm_payment(session, staff["admin"], first["id"], "cash")
    clock.moment = datetime(2024, 1, 2, 0, 1)
    with storage.transaction() as session:
        payment_utils.confirm_payment(session, staff["admin"], second["id"], "cash")
        revenue_utils.add_expense(session, staff["admin"], "Sugar", 5)

    with storage.transaction() as session:
        day_one = revenue_utils.get_daily_summary(session, staff["admin"], NEW_YEAR)
        day_two = revenue_utils.get_daily_summary(session, staff["admin"], date(2024, 1, 2))
        aggregate_two = revenue_utils.get_daily_revenue(session, staff["admin"], date(2024, 1, 2))

    assert (day_one["total_revenue"], day_one["total_expenses"]) == (Decimal("20.00"), Decimal("0.00"))
    assert (day_two["total_revenue"], day_two["total_expenses"]) == (Decimal("15.50"), Decimal("5.00"))
    assert aggregate_two["cash_total"] == Decimal("15.50")


def test_empty_day(storage, staff):
    with storage.transaction() as session:
        summary = revenue_utils.get_daily_summary(session, staff["admin"], date(2023, 6, 1))
        daily = revenue_utils.get_daily_revenue(session, staff["admin"], date(2023, 6, 1))
    assert summary["order_count"] == 0
    assert summary["net_profit"] == Decimal("0.00")
    assert daily["total_revenue"] == Decimal("0.00")


def test_employees_cannot_read_revenue(storage, staff):
    with storage.transaction() as session:
        with pytest.raises(AuthorizationError) as exc:
            revenue_utils.get_daily_summary(session, staff["alice"], NEW_YEAR)
    assert exc.value.code == "AdminOnly"


class TestExpenses:

    def test_add_list_delete(self, storage, staff, clock):
        with storage.transaction() as session:
            expense = revenue_utils.add_expense(session, staff["admin"], "  Tea leaves ", "80")
        assert expense["title"] == "Tea leaves"
        assert expense["amount"] == Decimal("80.00")

        with storage.transaction() as session:
            listed = revenue_utils.list_expenses(session, staff["admin"], NEW_YEAR)
            other_day = revenue_utils.list_expenses(session, staff["admin"], date(2024, 1, 5))
        assert [item["id"] for item in listed] == [expense["id"]]
        assert other_day == []

        with storage.transaction() as session:
            revenue_utils.delete_expense(session, staff["admin"], expense["id"])
        with storage.transaction() as session:
            assert revenue_utils.list_expenses(session, staff["admin"]) == []
            actions = [record.action for record in list_audit_records(session, "expenses", expense["id"])]
        assert actions == ["add_expense", "delete_expense"]

    @pytest.mark.parametrize("title, amount, code", [
        ("", 10, "InvalidTitle"),
        ("Milk", -1, "InvalidAmount"),
        ("Milk", "ten", "InvalidAmount"),
        ("Milk", "NaN", "InvalidAmount"),
    ])
    def test_invalid_expense(self, storage, staff, clock, title, amount, code):
        with storage.transaction() as session:
            with pytest.raises(ValidationError) as exc:
                revenue_utils.add_expense(session, staff["admin"], title, amount)
        assert exc.value.code == code

    def test_delete_unknown_expense(self, storage, staff):
        with storage.transaction() as session:
            with pytest.raises(NotFoundError):
                revenue_utils.delete_expense(session, staff["admin"], 77)

    def test_employees_cannot_record_expenses(self, storage, staff):
        with storage.transaction() as session:
            with pytest.raises(AuthorizationError):
                revenue_utils.add_expense(session, staff["bob"], "Milk", 10)
