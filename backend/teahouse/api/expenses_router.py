"""Expense API router (admin-only)."""

from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from teahouse.db import revenue_utils
from teahouse.db.dependencies import get_storage, get_current_caller
from teahouse.policy import Caller
from teahouse.storage import Storage


router = APIRouter(prefix="/api/expenses", tags=["expenses"])


class CreateExpenseRequest(BaseModel):
    title: str
    amount: Decimal


class ExpenseResponse(BaseModel):
    id: int
    title: str
    amount: float
    recorded_by: Optional[int]
    created_at: Optional[str]


@router.post("", response_model=ExpenseResponse, summary="Record an expense")
async def add_expense(
    request: CreateExpenseRequest,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    with storage.transaction() as session:
        expense = revenue_utils.add_expense(session, caller, request.title, request.amount)
    return ExpenseResponse(**expense)


@router.get("", response_model=list[ExpenseResponse], summary="List expenses")
async def list_expenses(
    day: Optional[date] = Query(None, description="Only expenses recorded on this date"),
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    session = storage.session()
    try:
        return [ExpenseResponse(**e) for e in revenue_utils.list_expenses(session, caller, day)]
    finally:
        session.close()


@router.delete("/{expense_id}", summary="Delete an expense")
async def delete_expense(
    expense_id: int,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    with storage.transaction() as session:
        revenue_utils.delete_expense(session, caller, expense_id)
    return {"status": "ok"}
