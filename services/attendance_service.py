"""
Attendance Service
==================
Check-in persistence and the 18:00 auto check-out. Timing rules live in
services.attendance_policy; this module only reads and writes rows.
"""

from datetime import date, datetime
import logging

from sqlalchemy import or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import Attendance, LeaveRequest
from services.attendance_policy import (
    AUTO_CHECKOUT_AT,
    DayStatus,
    RecordSnapshot,
    classify_check_in,
    due_checkout,
    evaluate_day,
    pay_cycle,
)
from services.leave_service import FREE_LEAVE_DAYS
from services.timezone_utils import local_to_utc, utc_now, format_local_datetime

logger = logging.getLogger(__name__)


class AlreadyCheckedIn(Exception):
    """A check-in already exists for this user and day."""


def _snapshot(record: Attendance | None) -> RecordSnapshot | None:
    if record is None:
        return None
    return RecordSnapshot(
        day=record.date,
        check_in=record.check_in,
        check_out=record.check_out,
        attendance_type=record.attendance_type,
        cycle_start_date=record.cycle_start_date,
        cycle_end_date=record.cycle_end_date,
    )


def get_record(db: Session, user_id: int, day: date) -> Attendance | None:
    return db.query(Attendance).filter(
        Attendance.user_id == user_id,
        Attendance.date == day,
    ).first()


def _apply_checkout(record: Attendance, checkout_local: datetime) -> None:
    record.check_out = local_to_utc(checkout_local)
    record.updated_at = utc_now()


def today_status(db: Session, user_id: int, now: datetime) -> dict:
    """
    Today's attendance as the dashboard card shows it. ``now`` is local wall time.

    A checkout that is due gets written here too, so a missed scheduler
    tick is caught up on the next read.
    """
    record = get_record(db, user_id, now.date())
    status: DayStatus = evaluate_day(now, _snapshot(record))

    if record is not None and status.checkout_due is not None:
        _apply_checkout(record, status.checkout_due)
        db.commit()
        db.refresh(record)
        logger.info(f"Auto check-out applied on read for user {user_id} ({record.date})")

    return {
        "date": now.date(),
        "state": status.state.value,
        "can_check_in": status.can_check_in,
        "message": status.message,
        "attendance_type": status.attendance_type.value if status.attendance_type else None,
        "check_in": format_local_datetime(record.check_in) if record else None,
        "check_out": format_local_datetime(record.check_out) if record else None,
        "cycle_start_date": status.cycle.start,
        "cycle_end_date": status.cycle.end,
    }


def check_in(db: Session, user_id: int, now: datetime) -> Attendance:
    """
    Record today's check-in at local time ``now``.

    Raises CheckInNotAllowed outside the window and AlreadyCheckedIn for a
    repeat, including one that loses a race on the (user_id, date) constraint.
    """
    today = now.date()
    record = get_record(db, user_id, today)
    if record is not None and record.check_in is not None:
        raise AlreadyCheckedIn("Already checked in today")

    attendance_type = classify_check_in(now)

    cycle = pay_cycle(today)
    stamp = utc_now()
    if record is None:
        record = Attendance(user_id=user_id, date=today, created_at=stamp)
        db.add(record)

    record.check_in = local_to_utc(now)
    record.attendance_type = attendance_type.value
    record.cycle_start_date = cycle.start
    record.cycle_end_date = cycle.end
    record.updated_at = stamp

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"Concurrent check-in rejected for user {user_id} on {today}")
        raise AlreadyCheckedIn("Already checked in today")

    db.refresh(record)
    logger.info(f"User {user_id} checked in ({attendance_type.value}) on {today}")
    return record


def run_auto_checkout(db: Session, now: datetime) -> int:
    """
    Close every open check-in whose 18:00 cutoff has passed. ``now`` is local
    wall time. Each record gets 18:00:00 of its own day, whatever ``now`` is.
    """
    today = now.date()
    past_cutoff = now.time() >= AUTO_CHECKOUT_AT
    day_filter = Attendance.date < today
    if past_cutoff:
        day_filter = or_(day_filter, Attendance.date == today)

    open_records = db.query(Attendance).filter(
        and_(
            Attendance.check_in.isnot(None),
            Attendance.check_out.is_(None),
            day_filter,
        )
    ).all()

    closed = 0
    for record in open_records:
        due = due_checkout(record.date, record.check_in, record.check_out, now)
        if due is None:
            continue
        _apply_checkout(record, due)
        closed += 1

    if closed:
        db.commit()
    return closed


def list_records(db: Session, user_id: int, limit: int = 60) -> list[Attendance]:
    return (
        db.query(Attendance)
        .filter(Attendance.user_id == user_id)
        .order_by(Attendance.date.desc())
        .limit(limit)
        .all()
    )


def cycle_summary(db: Session, user_id: int, today: date) -> dict:
    """Attendance statistics for the pay cycle containing ``today``."""
    cycle = pay_cycle(today)
    working_days = cycle.working_days(until=today)

    present_days = db.query(Attendance).filter(
        Attendance.user_id == user_id,
        Attendance.check_in.isnot(None),
        Attendance.date >= cycle.start,
        Attendance.date <= cycle.end,
    ).count()

    half_days = db.query(Attendance).filter(
        Attendance.user_id == user_id,
        Attendance.attendance_type == "half_day",
        Attendance.date >= cycle.start,
        Attendance.date <= cycle.end,
    ).count()

    approved_leave = db.query(LeaveRequest).filter(
        LeaveRequest.user_id == user_id,
        LeaveRequest.status == "approved",
        LeaveRequest.start_date >= cycle.start,
        LeaveRequest.start_date <= cycle.end,
    ).all()
    leave_days = sum(r.days_count for r in approved_leave)

    percentage = round(present_days / working_days * 100, 1) if working_days else 0.0
    if percentage >= 80:
        rating = "Good"
    elif percentage >= 60:
        rating = "Average"
    else:
        rating = "Poor"

    return {
        "cycle_start_date": cycle.start,
        "cycle_end_date": cycle.end,
        "total_working_days": working_days,
        "present_days": present_days,
        "half_days": half_days,
        "absent_days": max(0, working_days - present_days),
        "attendance_percentage": percentage,
        "rating": rating,
        "available_leaves": max(0, FREE_LEAVE_DAYS - leave_days),
    }
