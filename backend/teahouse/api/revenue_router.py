"""Revenue reporting API router (admin-only)."""

import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from teahouse.db import revenue_utils
from teahouse.db.dependencies import get_storage, get_current_caller
from teahouse.policy import Caller
from teahouse.storage import Storage
from teahouse.utils.time_utils import today_local


router = APIRouter(prefix="/api/revenue", tags=["revenue"])


class DailySummaryResponse(BaseModel):
    date: datetime.date
    total_revenue: float
    cash_revenue: float
    online_revenue: float
    total_expenses: float
    net_profit: float
    order_count: int


class DailyRevenueResponse(BaseModel):
    date: datetime.date
    cash_total: float
    online_total: float
    total_revenue: float


@router.get("/summary", response_model=DailySummaryResponse, summary="Revenue, expenses and profit for a day")
async def daily_summary(
    day: Optional[datetime.date] = Query(None, description="Calendar date, defaults to today"),
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    """Recomputed from payment records and expenses of that date."""
    session = storage.session()
    try:
        summary = revenue_utils.get_daily_summary(session, caller, day or today_local())
        return DailySummaryResponse(**summary)
    finally:
        session.close()


@router.get("/daily", response_model=DailyRevenueResponse, summary="Running cash/online totals for a day")
async def daily_revenue(
    day: Optional[datetime.date] = Query(None, description="Calendar date, defaults to today"),
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    session = storage.session()
    try:
        return DailyRevenueResponse(**revenue_utils.get_daily_revenue(session, caller, day or today_local()))
    finally:
        session.close()
