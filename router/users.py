"""
Users Router - Profiles and Salary
==================================
Every read of another user's data goes through services.access_policy.
"""

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload
from typing import List
from datetime import datetime, timezone
from decimal import Decimal
import logging

from models import Department, LeaveRequest, User
from schemas import UserProfileOut, UserUpdate, SalaryOut
from db import get_db
from auth import normalize_username
from dependencies import get_current_actor, get_local_now
from services.access_policy import (
    Actor,
    Role,
    can_view_profile,
    can_view_salary,
    check_profile_update,
)
from services.attendance_policy import pay_cycle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

# Profile fields that may be set back to null
CLEARABLE_FIELDS = frozenset({"department_id"})


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).options(
        joinedload(User.department)
    ).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _profile_out(actor: Actor, user: User) -> UserProfileOut:
    profile = UserProfileOut.model_validate(user)
    if not can_view_salary(actor, user.id):
        profile.salary = None
    return profile


@router.get("", response_model=List[UserProfileOut])
def list_users(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Admin sees everyone, a leader their department, an employee only themself."""
    query = db.query(User).options(joinedload(User.department))
    if actor.is_leader and actor.department_id is not None:
        query = query.filter(or_(User.department_id == actor.department_id, User.id == actor.id))
    elif not actor.is_admin:
        query = query.filter(User.id == actor.id)

    users = query.order_by(User.full_name, User.id).all()
    return [_profile_out(actor, u) for u in users if can_view_profile(actor, u.id, u.department_id)]


@router.get("/{user_id}", response_model=UserProfileOut)
def get_profile(
    user_id: int = Path(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    user = _get_user_or_404(db, user_id)
    if not can_view_profile(actor, user.id, user.department_id):
        raise HTTPException(status_code=403, detail="Not allowed to view this profile")
    return _profile_out(actor, user)


@router.patch("/{user_id}", response_model=UserProfileOut)
def update_profile(
    user_id: int = Path(...),
    updates: UserUpdate = ...,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """
    Update profile fields.

    Admin may change any field of any user. A leader may change name,
    username and email of users in their own department. Nobody else may
    edit profiles.
    """
    user = _get_user_or_404(db, user_id)
    changes = updates.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    try:
        check_profile_update(actor, user.id, user.department_id, changes.keys())
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))

    cleared = sorted(f for f, v in changes.items() if v is None and f not in CLEARABLE_FIELDS)
    if cleared:
        raise HTTPException(status_code=400, detail=f"Fields cannot be cleared: {', '.join(cleared)}")

    if "username" in changes:
        changes["username"] = normalize_username(changes["username"])
        clash = db.query(User).filter(User.username == changes["username"], User.id != user.id).first()
        if clash:
            raise HTTPException(status_code=400, detail="Username already taken")

    if "email" in changes:
        clash = db.query(User).filter(User.email == changes["email"], User.id != user.id).first()
        if clash:
            raise HTTPException(status_code=400, detail="Email already registered")

    if "role" in changes:
        changes["role"] = Role.parse(changes["role"]).value

    if changes.get("department_id") is not None:
        department = db.query(Department).filter(Department.id == changes["department_id"]).first()
        if not department:
            raise HTTPException(status_code=404, detail="Department not found")

    for field, value in changes.items():
        setattr(user, field, value)
    user.updated_at = datetime.now(timezone.utc).replace(tzinfo=None)

    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} updated by user {actor.id}: {sorted(changes)}")
    return _profile_out(actor, user)


@router.get("/{user_id}/salary", response_model=SalaryOut)
def get_salary(
    user_id: int = Path(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    now: datetime = Depends(get_local_now),
):
    """
    Salary for the current pay cycle.

    ``net_salary`` is the stored salary, which already has approved leave
    deductions taken out. ``total_salary`` adds those deductions back.
    """
    user = _get_user_or_404(db, user_id)
    if not can_view_salary(actor, user.id):
        raise HTTPException(status_code=403, detail="Not allowed to view this salary")

    cycle = pay_cycle(now.date())
    approved = db.query(LeaveRequest).filter(
        LeaveRequest.user_id == user.id,
        LeaveRequest.status == "approved",
        LeaveRequest.start_date >= cycle.start,
        LeaveRequest.start_date <= cycle.end,
    ).all()
    deductions = sum((Decimal(str(r.salary_deducted or 0)) for r in approved), Decimal("0.00"))
    net = Decimal(str(user.salary or 0))

    return SalaryOut(
        user_id=user.id,
        total_salary=net + deductions,
        deductions=deductions,
        net_salary=net,
        cycle_start_date=cycle.start,
        cycle_end_date=cycle.end,
    )
