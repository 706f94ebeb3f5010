"""Staff profiles: signup, lookup and employee verification."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from teahouse.db.audit import record_audit
from teahouse.db.models import Profile
from teahouse.errors import NotFoundError, StateError, ValidationError
from teahouse.policy import Caller, Operation, ROLE_ADMIN, ROLE_EMPLOYEE, ROLES, ensure_allowed
from teahouse.utils.time_utils import iso

logger = logging.getLogger(__name__)


def profile_to_dict(profile: Profile) -> Dict[str, Any]:
    return {
        "id": profile.id,
        "username": profile.username,
        "name": profile.name,
        "role": profile.role,
        "verified": profile.verified,
        "created_at": iso(profile.created_at),
    }


def caller_for(profile: Profile) -> Caller:
    return Caller(user_id=profile.id, role=profile.role, verified=bool(profile.verified))


def count_profiles(session: Session) -> int:
    return session.execute(select(func.count(Profile.id))).scalar_one()


def create_profile(
    session: Session,
    username: str,
    password_hash: str,
    role: str = ROLE_EMPLOYEE,
    name: Optional[str] = None,
) -> Profile:
    """
    Insert a profile. Employees start unverified; admins are verified.
    """
    if role not in ROLES:
        raise ValidationError("InvalidRole", f"Role must be one of {', '.join(ROLES)}", role=role)
    if session.execute(select(Profile).where(Profile.username == username)).scalar_one_or_none():
        raise StateError("UsernameTaken", "username already exists", username=username)

    profile = Profile(
        username=username,
        password_hash=password_hash,
        name=name,
        role=role,
        verified=role == ROLE_ADMIN,
    )
    session.add(profile)
    session.flush()
    record_audit(session, "signup", "profiles", profile.id, {"role": role}, profile.id)
    logger.info("Profile %s created with role %s", username, role)
    return profile


def get_profile(session: Session, user_id: int) -> Profile:
    profile = session.get(Profile, user_id)
    if profile is None:
        raise NotFoundError("Profile", user_id)
    return profile


def list_employees(session: Session, caller: Caller) -> List[Dict[str, Any]]:
    ensure_allowed(caller, Operation.MANAGE_EMPLOYEES)
    stmt = select(Profile).where(Profile.role == ROLE_EMPLOYEE).order_by(Profile.created_at.desc())
    return [profile_to_dict(profile) for profile in session.execute(stmt).scalars().all()]


def verify_employee(session: Session, caller: Caller, user_id: int, verified: bool) -> Dict[str, Any]:
    """Grant or revoke an employee's operational access."""
    ensure_allowed(caller, Operation.MANAGE_EMPLOYEES)
    profile = session.get(Profile, user_id)
    if profile is None or profile.role != ROLE_EMPLOYEE:
        raise NotFoundError("Employee", user_id)

    profile.verified = bool(verified)
    session.flush()
    record_audit(
        session,
        "verify_employee",
        "profiles",
        profile.id,
        {"verified": profile.verified, "verified_by": caller.user_id},
        caller.user_id,
    )
    logger.info("Employee %s verified=%s by admin %s", profile.username, profile.verified, caller.user_id)
    return profile_to_dict(profile)
