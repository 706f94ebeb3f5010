"""Menu management API router."""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from teahouse.db import floor_utils
from teahouse.db.dependencies import get_storage, get_current_caller
from teahouse.policy import Caller
from teahouse.storage import Storage


router = APIRouter(prefix="/api/menu", tags=["menu"])


class MenuItemResponse(BaseModel):
    id: int
    name: str
    price: float
    category: Optional[str]
    active: bool


class CreateMenuItemRequest(BaseModel):
    name: str
    price: Decimal
    category: Optional[str] = None


class UpdateMenuItemRequest(BaseModel):
    name: Optional[str] = None
    price: Optional[Decimal] = None
    category: Optional[str] = None
    active: Optional[bool] = None


@router.get("", response_model=list[MenuItemResponse], summary="List menu items")
async def list_menu(
    include_inactive: bool = Query(False, description="Include removed items (admin-only)"),
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    session = storage.session()
    try:
        return [MenuItemResponse(**i) for i in floor_utils.list_menu_items(session, caller, include_inactive)]
    finally:
        session.close()


@router.post("", response_model=MenuItemResponse, summary="Add a menu item (admin-only)")
async def create_menu_item(
    request: CreateMenuItemRequest,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    with storage.transaction() as session:
        item = floor_utils.create_menu_item(session, caller, request.name, request.price, request.category)
    return MenuItemResponse(**item)


@router.put("/{item_id}", response_model=MenuItemResponse, summary="Update a menu item (admin-only)")
async def update_menu_item(
    item_id: int,
    request: UpdateMenuItemRequest,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    with storage.transaction() as session:
        item = floor_utils.update_menu_item(session, caller, item_id, **request.model_dump())
    return MenuItemResponse(**item)


@router.delete("/{item_id}", summary="Remove a menu item (admin-only)")
async def delete_menu_item(
    item_id: int,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    with storage.transaction() as session:
        floor_utils.delete_menu_item(session, caller, item_id)
    return {"status": "ok"}
