"""Auth endpoints for signup, login and the caller's own profile."""

import os
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from teahouse.db.dependencies import (
    get_storage,
    get_current_caller,
    hash_password,
    verify_password,
    create_access_token,
    ACCESS_TOKEN_EXPIRE_MINUTES
)
from teahouse.db.models import Profile
from teahouse.db import staff_utils
from teahouse.policy import Caller, Operation, ROLE_ADMIN, ROLE_EMPLOYEE, ensure_allowed
from teahouse.storage import Storage


router = APIRouter(prefix="/api/auth", tags=["auth"])


class SignupRequest(BaseModel):
    username: str
    password: str
    name: Optional[str] = None
    role: str = ROLE_EMPLOYEE


class ProfileResponse(BaseModel):
    id: int
    username: str
    name: Optional[str]
    role: str
    verified: bool
    created_at: Optional[str]


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str


@router.post("/signup", response_model=ProfileResponse, summary="Create a staff account")
async def signup_user(request: SignupRequest, storage: Storage = Depends(get_storage)):
    """
    Create a staff account.

    New employees start unverified and must be approved by an admin. An admin
    account can only be created in dev (ENVIRONMENT=dev) or while no account
    exists yet.
    """
    if not request.username or not request.password:
        raise HTTPException(status_code=400, detail="username and password are required")

    with storage.transaction() as session:
        if request.role == ROLE_ADMIN:
            allow_dev = os.getenv("ENVIRONMENT", "dev").lower() == "dev"
            if not allow_dev and staff_utils.count_profiles(session) > 0:
                raise HTTPException(status_code=403, detail="Admin signup disabled")

        profile = staff_utils.create_profile(
            session,
            username=request.username,
            password_hash=hash_password(request.password),
            role=request.role,
            name=request.name,
        )
        return ProfileResponse(**staff_utils.profile_to_dict(profile))


@router.post("/login", response_model=TokenResponse, summary="Login and get JWT token")
async def login_user(request: LoginRequest, storage: Storage = Depends(get_storage)):
    """Authenticate a user and return a JWT access token."""
    session = storage.session()
    try:
        profile = session.query(Profile).filter(Profile.username == request.username).first()
        if not profile or not verify_password(request.password, profile.password_hash):
            raise HTTPException(status_code=401, detail="Invalid credentials")

        access_token = create_access_token(
            data={"sub": str(profile.id), "role": profile.role},
            expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
        )

        return TokenResponse(access_token=access_token, token_type="bearer")
    finally:
        session.close()


@router.get("/me", response_model=ProfileResponse, summary="Own profile")
async def read_own_profile(
    storage: Storage = Depends(get_storage),
    caller: Caller = Depends(get_current_caller)
):
    """Available to every signed-in account, verified or not."""
    ensure_allowed(caller, Operation.VIEW_OWN_PROFILE)
    session = storage.session()
    try:
        profile = staff_utils.get_profile(session, caller.user_id)
        return ProfileResponse(**staff_utils.profile_to_dict(profile))
    finally:
        session.close()
