from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List
from datetime import datetime
import logging

from models import User
from schemas import AttendanceTodayOut, AttendanceRecordOut, AttendanceCycleSummaryOut
from db import get_db
from dependencies import get_current_actor, get_local_now
from services.access_policy import Actor, can_view_profile
from services.attendance_policy import CheckInNotAllowed
from services.attendance_service import (
    AlreadyCheckedIn,
    check_in,
    cycle_summary,
    list_records,
    today_status,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attendance", tags=["Attendance"])


@router.get("/today", response_model=AttendanceTodayOut)
def read_today(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    now: datetime = Depends(get_local_now),
):
    """Today's check-in state for the caller. Closes the day if 6 PM has passed."""
    return today_status(db, actor.id, now)


@router.post("/check-in", response_model=AttendanceTodayOut)
def mark_check_in(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    now: datetime = Depends(get_local_now),
):
    """
    Check in for today.

    10:00-10:15 counts as a full day, 10:15-18:00 as a half day.
    Sundays and times outside the window are rejected with 400, a second
    check-in on the same day with 409.
    """
    try:
        check_in(db, actor.id, now)
    except AlreadyCheckedIn as e:
        raise HTTPException(status_code=409, detail=str(e))
    except CheckInNotAllowed as e:
        raise HTTPException(status_code=400, detail=str(e))
    return today_status(db, actor.id, now)


@router.get("/cycle", response_model=AttendanceCycleSummaryOut)
def read_cycle_summary(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    now: datetime = Depends(get_local_now),
):
    return cycle_summary(db, actor.id, now.date())


@router.get("/users/{user_id}", response_model=List[AttendanceRecordOut])
def read_user_attendance(
    user_id: int,
    limit: int = Query(60, ge=1, le=366),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    if not can_view_profile(actor, target.id, target.department_id):
        raise HTTPException(status_code=403, detail="Operation not permitted")
    return list_records(db, user_id, limit=limit)
