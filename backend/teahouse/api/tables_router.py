"""Cafe table API router."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from teahouse.db import floor_utils
from teahouse.db.dependencies import get_storage, get_current_caller
from teahouse.policy import Caller
from teahouse.storage import Storage


router = APIRouter(prefix="/api/tables", tags=["tables"])


class TableResponse(BaseModel):
    id: int
    table_number: int
    status: str


class CreateTableRequest(BaseModel):
    table_number: int


@router.get("", response_model=list[TableResponse], summary="List tables with occupancy")
async def list_tables(
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    session = storage.session()
    try:
        return [TableResponse(**t) for t in floor_utils.list_tables(session, caller)]
    finally:
        session.close()


@router.post("", response_model=TableResponse, summary="Add a table (admin-only)")
async def create_table(
    request: CreateTableRequest,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    with storage.transaction() as session:
        table = floor_utils.create_table(session, caller, request.table_number)
    return TableResponse(**table)


@router.delete("/{table_id}", summary="Delete a table, keeping its orders (admin-only)")
async def delete_table(
    table_id: int,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    with storage.transaction() as session:
        detached = floor_utils.delete_table(session, caller, table_id)
    return {"status": "ok", "detached_orders": detached}
