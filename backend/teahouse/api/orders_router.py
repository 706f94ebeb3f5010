"""
Orders API router.

Thin HTTP wrapper over the order lifecycle and payment settlement. Every
mutating endpoint runs its core operation inside one ledger transaction;
domain errors are rendered by the app-level handler.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from teahouse.db import order_utils, payment_utils
from teahouse.db.dependencies import get_storage, get_current_caller
from teahouse.db.order_utils import LineItemIn
from teahouse.policy import Caller
from teahouse.storage import Storage


router = APIRouter(prefix="/api/orders", tags=["orders", "payments"])


# ---------- Request/Response Models ----------

class CreateOrderRequest(BaseModel):
    table_id: int
    items: list[LineItemIn]


class EditOrderRequest(BaseModel):
    items: list[LineItemIn]
    total_price: Decimal
    status: Optional[str] = None
    table_id: Optional[int] = None


class StatusRequest(BaseModel):
    status: str


class PaymentRequest(BaseModel):
    method: str


class SplitPaymentRequest(BaseModel):
    cash_amount: Decimal
    online_amount: Decimal


class OrderItemResponse(BaseModel):
    id: int
    item_id: Optional[int]
    name: str
    qty: int
    unit_price: float
    line_total: float


class OrderResponse(BaseModel):
    id: int
    table_id: Optional[int]
    table_number: Optional[int]
    created_by_user_id: Optional[int]
    status: str
    payment_method: str
    total_price: float
    items: list[OrderItemResponse]
    created_at: Optional[str]
    updated_at: Optional[str]


class PaymentResponse(BaseModel):
    order_id: int
    amount: float
    method: str


class SplitPaymentResponse(BaseModel):
    order_id: int
    cash_amount: float
    online_amount: float
    total_amount: float


class PaymentRecordResponse(BaseModel):
    id: int
    order_id: Optional[int]
    method: str
    amount: float
    recorded_by: Optional[int]
    created_at: Optional[str]


# ---------- Order lifecycle ----------

@router.post("", response_model=OrderResponse, summary="Create an order on an empty table")
async def create_order(
    request: CreateOrderRequest,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    with storage.transaction() as session:
        order = order_utils.create_order(session, caller, request.table_id, request.items)
    return OrderResponse(**order)


@router.get("", response_model=list[OrderResponse], summary="List orders")
async def list_orders(
    status: Optional[str] = Query(None, description="Only orders in this status"),
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    session = storage.session()
    try:
        return [OrderResponse(**o) for o in order_utils.list_orders(session, caller, status)]
    finally:
        session.close()


@router.get("/{order_id}", response_model=OrderResponse, summary="Get one order")
async def get_order(
    order_id: int,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    session = storage.session()
    try:
        return OrderResponse(**order_utils.get_order(session, caller, order_id))
    finally:
        session.close()


@router.put("/{order_id}", response_model=OrderResponse, summary="Edit an order's items, status or table")
async def edit_order(
    order_id: int,
    request: EditOrderRequest,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    with storage.transaction() as session:
        order = order_utils.edit_order(
            session,
            caller,
            order_id,
            request.items,
            request.total_price,
            status=request.status,
            table_id=request.table_id,
        )
    return OrderResponse(**order)


@router.post("/{order_id}/status", response_model=OrderResponse, summary="Advance an order's kitchen status")
async def advance_status(
    order_id: int,
    request: StatusRequest,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    with storage.transaction() as session:
        order = order_utils.advance_status(session, caller, order_id, request.status)
    return OrderResponse(**order)


# ---------- Settlement ----------

@router.post("/{order_id}/payment", response_model=PaymentResponse, summary="Settle a delivered order (admin-only)")
async def confirm_payment(
    order_id: int,
    request: PaymentRequest,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    with storage.transaction() as session:
        result = payment_utils.confirm_payment(session, caller, order_id, request.method)
    return PaymentResponse(**result)


@router.post("/{order_id}/split-payment", response_model=SplitPaymentResponse, summary="Settle with cash and online parts (admin-only)")
async def confirm_split_payment(
    order_id: int,
    request: SplitPaymentRequest,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    with storage.transaction() as session:
        result = payment_utils.confirm_split_payment(
            session, caller, order_id, request.cash_amount, request.online_amount
        )
    return SplitPaymentResponse(**result)


@router.get("/{order_id}/payments", response_model=list[PaymentRecordResponse], summary="Payment records of an order (admin-only)")
async def list_payments(
    order_id: int,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    session = storage.session()
    try:
        return [PaymentRecordResponse(**p) for p in payment_utils.list_payments(session, caller, order_id)]
    finally:
        session.close()
