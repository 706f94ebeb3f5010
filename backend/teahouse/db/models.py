"""
Relational models for the teahouse ledger.

Used by the storage layer and by Alembic for migration generation. Money
columns hold integer cents; timestamps are naive restaurant-local time.
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, JSON, ForeignKey, Index, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from teahouse.utils.money import from_cents
from teahouse.utils.time_utils import now_local_naive

Base = declarative_base()

ORDER_STATUSES = ("taken", "prepared", "delivered", "paid")
PAYMENT_METHODS = ("cash", "online")


class Profile(Base):
    """Staff account: admin or (verified/unverified) employee."""

    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="employee")  # admin, employee
    verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=now_local_naive, nullable=False)

    orders = relationship("Order", back_populates="created_by")

    def __repr__(self):
        return f"<Profile(id={self.id}, username={self.username}, role={self.role})>"


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Integer, nullable=False)  # cents
    category = Column(String(100), nullable=True, index=True)
    active = Column(Boolean, default=True, nullable=False)  # Soft-delete flag
    created_at = Column(DateTime, default=now_local_naive, nullable=False)

    def __repr__(self):
        return f"<MenuItem(id={self.id}, name={self.name}, price={self.price})>"


class CafeTable(Base):
    __tablename__ = "cafe_tables"

    id = Column(Integer, primary_key=True, index=True)
    table_number = Column(Integer, unique=True, nullable=False)
    status = Column(String(20), nullable=False, default="empty")  # empty, occupied

    orders = relationship("Order", back_populates="table", passive_deletes=True)

    def __repr__(self):
        return f"<CafeTable(id={self.id}, number={self.table_number}, status={self.status})>"


class Order(Base):
    """Order for a table, moving taken -> prepared -> delivered -> paid."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    table_id = Column(Integer, ForeignKey("cafe_tables.id", ondelete="SET NULL"), nullable=True)
    created_by_user_id = Column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(20), nullable=False, default="taken")
    total_price = Column(Integer, nullable=False, default=0)  # cents
    payment_method = Column(String(20), nullable=False, default="none")  # none, cash, online, split
    created_at = Column(DateTime, default=now_local_naive, nullable=False)
    updated_at = Column(DateTime, default=now_local_naive, nullable=False)

    __table_args__ = (
        Index("idx_orders_table", "table_id"),
        Index("idx_orders_created_by", "created_by_user_id"),
        Index("idx_orders_status", "status"),
    )

    table = relationship("CafeTable", back_populates="orders")
    created_by = relationship("Profile", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="order")

    @property
    def total(self):
        return from_cents(self.total_price)

    def __repr__(self):
        return f"<Order(id={self.id}, table_id={self.table_id}, status={self.status})>"


class OrderItem(Base):
    """Line item with the menu name and price captured when it was added."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    qty = Column(Integer, nullable=False, default=1)
    unit_price = Column(Integer, nullable=False)  # cents

    order = relationship("Order", back_populates="items")

    @property
    def line_total(self) -> int:
        return self.qty * self.unit_price

    def __repr__(self):
        return f"<OrderItem(id={self.id}, name={self.name}, qty={self.qty})>"


class Payment(Base):
    """One ledger entry per (order, method); split settlement writes two."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)
    method = Column(String(20), nullable=False)  # cash, online
    amount = Column(Integer, nullable=False)  # cents
    recorded_by = Column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=now_local_naive, nullable=False)

    __table_args__ = (
        UniqueConstraint("order_id", "method", name="uq_payments_order_method"),
        Index("idx_payments_created", "created_at"),
    )

    order = relationship("Order", back_populates="payments")

    def __repr__(self):
        return f"<Payment(id={self.id}, order_id={self.order_id}, method={self.method}, amount={self.amount})>"


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    amount = Column(Integer, nullable=False)  # cents
    recorded_by = Column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=now_local_naive, nullable=False, index=True)

    def __repr__(self):
        return f"<Expense(id={self.id}, title={self.title}, amount={self.amount})>"


class DailyRevenue(Base):
    """Running per-day totals, upserted at each settlement."""

    __tablename__ = "daily_revenue"

    id = Column(Integer, primary_key=True, index=True)
    revenue_date = Column(Date, unique=True, nullable=False)
    cash_total = Column(Integer, nullable=False, default=0)  # cents
    online_total = Column(Integer, nullable=False, default=0)  # cents

    @property
    def total_revenue(self) -> int:
        return (self.cash_total or 0) + (self.online_total or 0)

    def __repr__(self):
        return f"<DailyRevenue(date={self.revenue_date}, cash={self.cash_total}, online={self.online_total})>"


class AuditLog(Base):
    """Append-only record of a mutating operation."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(50), nullable=False, index=True)
    table_name = Column(String(50), nullable=False)
    record_id = Column(Integer, nullable=True)
    changes = Column(JSON, nullable=False, default=dict)
    performed_by = Column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=now_local_naive, nullable=False)

    __table_args__ = (
        Index("idx_audit_logs_record", "table_name", "record_id"),
    )

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action={self.action}, record={self.table_name}:{self.record_id})>"
