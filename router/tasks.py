"""
Tasks Router
============
Assignment, status tracking and comments.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Path, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime

from models import User
from schemas import (
    TaskCreate,
    PersonalTaskCreate,
    TaskOut,
    TaskStatusUpdate,
    TaskPriorityUpdate,
    TaskStatsOut,
    CommentCreate,
    CommentOut,
)
from db import get_db
from dependencies import allow_leader, get_current_actor, get_local_now
from services.access_policy import Actor, can_view_profile
from services import task_service

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def _raise_http(e: Exception):
    if isinstance(e, LookupError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, PermissionError):
        raise HTTPException(status_code=403, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


# ============================================================================
# ASSIGN / LIST
# ============================================================================

@router.post("", response_model=TaskOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(allow_leader)])
def create_task(
    task: TaskCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    now: datetime = Depends(get_local_now),
):
    """
    Assign a task.

    Admins assign to anyone; leaders only to employees of their own department.
    """
    try:
        return task_service.assign_task(
            db,
            actor,
            title=task.title,
            description=task.description,
            assignee_id=task.assignee_id,
            due_date=task.due_date,
            priority=task.priority,
            today=now.date(),
            assignment_notes=task.assignment_notes,
        )
    except (ValueError, LookupError, PermissionError) as e:
        _raise_http(e)


@router.post("/personal", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_personal_task(
    task: PersonalTaskCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    now: datetime = Depends(get_local_now),
):
    """Log a self-initiated task, due today, already done or still pending."""
    try:
        return task_service.create_personal_task(
            db,
            actor,
            title=task.title,
            description=task.description,
            today=now.date(),
            completed=task.is_completed,
        )
    except ValueError as e:
        _raise_http(e)


@router.get("", response_model=List[TaskOut])
def list_tasks(
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return task_service.list_tasks(db, actor, status=status, priority=priority)


@router.get("/stats/{user_id}", response_model=TaskStatsOut)
def get_task_stats(
    user_id: int = Path(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    now: datetime = Depends(get_local_now),
):
    """Completion figures for tasks assigned to a user whose profile the caller may view."""
    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    if not can_view_profile(actor, target.id, target.department_id):
        raise HTTPException(status_code=403, detail="Operation not permitted")
    return task_service.task_stats(db, user_id, now.date())


@router.get("/{task_id}", response_model=TaskOut)
def get_task(
    task_id: int = Path(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        return task_service.get_visible_task(db, actor, task_id)
    except (LookupError, PermissionError) as e:
        _raise_http(e)


# ============================================================================
# STATUS & COMMENTS
# ============================================================================

@router.patch("/{task_id}/status", response_model=TaskOut)
def update_status(
    task_id: int = Path(...),
    update: TaskStatusUpdate = ...,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """
    Change task status. Assignees may only move their task between
    pending and in_progress; leaders manage their department's tasks fully.
    A comment recording the change is added to the task.
    """
    try:
        return task_service.update_task_status(db, actor, task_id, update.status)
    except (ValueError, LookupError, PermissionError) as e:
        _raise_http(e)


@router.patch("/{task_id}/priority", response_model=TaskOut)
def update_priority(
    task_id: int = Path(...),
    update: TaskPriorityUpdate = ...,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        return task_service.update_task_priority(db, actor, task_id, update.priority)
    except (ValueError, LookupError, PermissionError) as e:
        _raise_http(e)


@router.get("/{task_id}/comments", response_model=List[CommentOut])
def get_comments(
    task_id: int = Path(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        return task_service.list_comments(db, actor, task_id)
    except (LookupError, PermissionError) as e:
        _raise_http(e)


@router.post("/{task_id}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
def post_comment(
    task_id: int = Path(...),
    comment: CommentCreate = ...,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        return task_service.add_comment(db, actor, task_id, comment.comment)
    except (ValueError, LookupError, PermissionError) as e:
        _raise_http(e)
