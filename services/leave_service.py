"""
Leave Service - Salary Deduction and Review Workflow
"""

from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models import LeaveRequest, User
from services.access_policy import Actor, can_review_leave
from services.attendance_policy import pay_cycle

logger = logging.getLogger(__name__)

# Leave days per request (and per pay cycle) that cost nothing
FREE_LEAVE_DAYS = 2
SALARY_DAYS_PER_MONTH = Decimal("30")
CENTS = Decimal("0.01")

LEAVE_STATUSES = ("pending", "approved", "rejected")


# DEDUCTION CALCULATION
# ============================================================================

def calculate_leave_days(start_date: date, end_date: date) -> int:
    """Inclusive day span between two dates."""
    start = start_date.date() if isinstance(start_date, datetime) else start_date
    end = end_date.date() if isinstance(end_date, datetime) else end_date
    if end < start:
        raise ValueError("End date must be >= start date")
    return (end - start).days + 1


def calculate_salary_deduction(days: int, monthly_salary) -> Decimal:
    """
    Salary deducted for a leave of ``days`` days.

    The first two days are free; each further day costs one thirtieth of the
    monthly salary.
    """
    if days <= FREE_LEAVE_DAYS:
        return Decimal("0.00")
    per_day = Decimal(str(monthly_salary or 0)) / SALARY_DAYS_PER_MONTH
    deduction = (days - FREE_LEAVE_DAYS) * per_day
    return deduction.quantize(CENTS, rounding=ROUND_HALF_UP)


# CREATE LEAVE REQUEST
# ============================================================================

def create_leave_request(
    db: Session,
    user: User,
    leave_type: str,
    reason: str,
    start_date: date,
    end_date: date,
    notes: Optional[str] = None,
) -> LeaveRequest:
    """
    Submit a leave request. days_count and salary_deducted are fixed here,
    from the salary on file at submission time.
    """
    days = calculate_leave_days(start_date, end_date)
    deduction = calculate_salary_deduction(days, user.salary)

    leave = LeaveRequest(
        user_id=user.id,
        leave_type=leave_type,
        reason=reason,
        start_date=start_date,
        end_date=end_date,
        notes=notes,
        days_count=days,
        salary_deducted=deduction,
        status="pending",
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)

    logger.info(
        f"Leave request {leave.id} submitted by user {user.id}: "
        f"{days} day(s), deduction={deduction}"
    )
    return leave


# REVIEW
# ============================================================================

def review_leave_request(
    db: Session,
    actor: Actor,
    leave_request_id: int,
    approve: bool,
) -> LeaveRequest:
    """
    Approve or reject a pending request.

    On approval the deduction stored at submission is subtracted from the
    requester's salary, stopping at zero, and the days are added to
    leave_taken. The request keeps the amount actually deducted.
    """
    leave = db.query(LeaveRequest).filter(LeaveRequest.id == leave_request_id).first()
    if not leave:
        raise LookupError("Leave request not found")

    requester = db.query(User).filter(User.id == leave.user_id).first()
    if not requester:
        raise LookupError("Requesting user not found")

    if not can_review_leave(actor, requester.id, requester.department_id):
        raise PermissionError("Not allowed to review this leave request")

    if leave.status != "pending":
        raise ValueError(f"Leave request already {leave.status}")

    now = datetime.now(timezone.utc).replace(tzinfo=None)
    leave.status = "approved" if approve else "rejected"
    leave.reviewed_by_id = actor.id
    leave.reviewed_at = now
    leave.updated_at = now

    if approve:
        deduction = Decimal(str(leave.salary_deducted or 0))
        if deduction > 0:
            # Salary never goes below zero; keep only what was actually taken
            salary = Decimal(str(requester.salary or 0))
            deduction = min(deduction, max(salary, Decimal("0.00")))
            requester.salary = salary - deduction
            leave.salary_deducted = deduction
        requester.leave_taken = (requester.leave_taken or 0) + leave.days_count
        requester.updated_at = now

    db.commit()
    db.refresh(leave)

    logger.info(f"Leave request {leave.id} {leave.status} by user {actor.id}")
    return leave


# QUERIES
# ============================================================================

def list_leave_requests(db: Session, actor: Actor, status: Optional[str] = None) -> list[LeaveRequest]:
    """Admin sees all requests, a leader its department's plus its own, everyone else their own."""
    query = db.query(LeaveRequest)
    if actor.is_leader and actor.department_id is not None:
        query = query.join(User, LeaveRequest.user_id == User.id).filter(
            or_(User.department_id == actor.department_id, LeaveRequest.user_id == actor.id)
        )
    elif not actor.is_admin:
        query = query.filter(LeaveRequest.user_id == actor.id)

    if status:
        query = query.filter(LeaveRequest.status == status)
    return query.order_by(LeaveRequest.created_at.desc()).all()


def cycle_leave_summary(db: Session, user_id: int, today: date) -> dict:
    """Approved leave days whose start falls in the current pay cycle, and the free days left."""
    cycle = pay_cycle(today)
    approved = db.query(LeaveRequest).filter(
        LeaveRequest.user_id == user_id,
        LeaveRequest.status == "approved",
        LeaveRequest.start_date >= cycle.start,
        LeaveRequest.start_date <= cycle.end,
    ).all()
    used = sum(r.days_count for r in approved)
    pending = db.query(LeaveRequest).filter(
        LeaveRequest.user_id == user_id,
        LeaveRequest.status == "pending",
    ).count()

    return {
        "cycle_start_date": cycle.start,
        "cycle_end_date": cycle.end,
        "approved_days": used,
        "pending_requests": pending,
        "remaining_free_days": max(0, FREE_LEAVE_DAYS - used),
    }
