"""
Leave Router - Requests, Review and Cycle Summary
=================================================
"""
from fastapi import APIRouter, Depends, HTTPException, status, Path, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime

from models import User
from schemas import (
    LeaveRequestCreate,
    LeaveRequestOut,
    LeaveReviewRequest,
    LeaveSummaryOut,
)
from db import get_db
from dependencies import allow_leader, get_current_actor, get_current_user, get_local_now
from services.access_policy import Actor
from services.leave_service import (
    LEAVE_STATUSES,
    create_leave_request,
    cycle_leave_summary,
    list_leave_requests,
    review_leave_request,
)


router = APIRouter(prefix="/leaves", tags=["Leaves"])


@router.post("", response_model=LeaveRequestOut, status_code=status.HTTP_201_CREATED)
def request_leave(
    leave: LeaveRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Submit a leave request for the caller.

    The first two days are free; every further day deducts one thirtieth
    of the monthly salary, applied only once the request is approved.
    """
    try:
        return create_leave_request(
            db=db,
            user=current_user,
            leave_type=leave.leave_type.strip(),
            reason=leave.reason.strip(),
            start_date=leave.start_date,
            end_date=leave.end_date,
            notes=leave.notes,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=List[LeaveRequestOut])
def get_leaves(
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    if status is not None and status not in LEAVE_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
    return list_leave_requests(db, actor, status=status)


@router.get("/summary", response_model=LeaveSummaryOut)
def get_leave_summary(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    now: datetime = Depends(get_local_now),
):
    """Leave taken in the current pay cycle and free days left."""
    return cycle_leave_summary(db, actor.id, now.date())


@router.post("/{leave_id}/review", response_model=LeaveRequestOut, dependencies=[Depends(allow_leader)])
def review_leave(
    leave_id: int = Path(...),
    review: LeaveReviewRequest = ...,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """
    Approve or reject a pending leave request.

    Admins review any request, leaders requests from their own department
    other than their own. Approval applies the stored deduction to salary.
    """
    try:
        return review_leave_request(
            db=db,
            actor=actor,
            leave_request_id=leave_id,
            approve=review.action == "approve",
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
