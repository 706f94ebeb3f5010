"""Admin employee management API."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from teahouse.api.auth_router import ProfileResponse
from teahouse.db import staff_utils
from teahouse.db.dependencies import get_storage, get_current_caller
from teahouse.policy import Caller
from teahouse.storage import Storage


router = APIRouter(prefix="/api/employees", tags=["employees"])


class VerificationRequest(BaseModel):
    verified: bool


@router.get("", response_model=list[ProfileResponse], summary="List employees (admin-only)")
async def list_employees(
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    session = storage.session()
    try:
        return [ProfileResponse(**p) for p in staff_utils.list_employees(session, caller)]
    finally:
        session.close()


@router.put("/{user_id}/verification", response_model=ProfileResponse, summary="Verify or revoke an employee (admin-only)")
async def set_verification(
    user_id: int,
    request: VerificationRequest,
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    with storage.transaction() as session:
        profile = staff_utils.verify_employee(session, caller, user_id, request.verified)
    return ProfileResponse(**profile)
