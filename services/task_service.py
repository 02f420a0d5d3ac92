"""
Task Service
============
Assignment, status updates and comments. Every mutation consults
services.access_policy; callers translate the raised errors to HTTP codes.
"""

from datetime import date, datetime, timezone
from typing import Optional
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models import Comment, Task, User
from services.access_policy import (
    Actor,
    TaskPriority,
    TaskStatus,
    can_assign_task,
    can_change_task_priority,
    can_update_task_status,
    can_view_task,
    task_visibility,
)

logger = logging.getLogger(__name__)

CLOSED_STATUSES = (TaskStatus.COMPLETED.value, TaskStatus.CANCELLED.value)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_visible_task(db: Session, actor: Actor, task_id: int) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise LookupError("Task not found")
    if not can_view_task(actor, task.assignee_id, task.assigned_by_id, task.department_id):
        raise PermissionError("Not allowed to view this task")
    return task


# ASSIGN
# ============================================================================

def assign_task(
    db: Session,
    actor: Actor,
    title: str,
    description: str,
    assignee_id: int,
    due_date: date,
    priority: str,
    today: date,
    assignment_notes: Optional[str] = None,
) -> Task:
    try:
        priority = TaskPriority(priority).value
    except ValueError:
        raise ValueError("Invalid priority level")

    if due_date < today:
        raise ValueError("Due date cannot be in the past")

    assignee = db.query(User).filter(User.id == assignee_id).first()
    if not assignee:
        raise LookupError("Assignee not found")

    if not can_assign_task(actor, assignee.role, assignee.department_id):
        raise PermissionError("Insufficient permissions to assign tasks to this user")

    now = _utc_now()
    task = Task(
        title=title.strip(),
        description=description.strip(),
        assignee_id=assignee.id,
        assigned_by_id=actor.id,
        department_id=assignee.department_id,
        due_date=due_date,
        priority=priority,
        status=TaskStatus.PENDING.value,
        assignment_notes=(assignment_notes or "").strip() or None,
        created_at=now,
        updated_at=now,
        assigned_at=now,
    )
    db.add(task)
    db.commit()
    db.refresh(task)

    logger.info(f"Task {task.id} assigned to user {assignee.id} by user {actor.id}")
    return task


def create_personal_task(
    db: Session,
    actor: Actor,
    title: str,
    description: Optional[str],
    today: date,
    completed: bool = False,
) -> Task:
    """
    Record a task the caller did on their own initiative.

    Any role may do this. The caller is both assignee and assigner, the task
    lands in the caller's department and is due today.
    """
    title = (title or "").strip()
    if not title:
        raise ValueError("Title cannot be empty")

    status = TaskStatus.COMPLETED if completed else TaskStatus.PENDING
    now = _utc_now()
    task = Task(
        title=title,
        description=(description or "").strip(),
        assignee_id=actor.id,
        assigned_by_id=actor.id,
        department_id=actor.department_id,
        due_date=today,
        priority=TaskPriority.MEDIUM.value,
        status=status.value,
        created_at=now,
        updated_at=now,
        assigned_at=now,
    )
    db.add(task)
    db.commit()
    db.refresh(task)

    logger.info(f"Personal task {task.id} created by user {actor.id} ({status.value})")
    return task


# STATUS & COMMENTS
# ============================================================================

def update_task_status(db: Session, actor: Actor, task_id: int, new_status: str) -> Task:
    """
    Change a task's status, then append a system comment recording it.
    The two writes are separate commits.
    """
    try:
        status = TaskStatus(new_status)
    except ValueError:
        raise ValueError(f"Invalid status: {new_status}")

    task = get_visible_task(db, actor, task_id)
    if not can_update_task_status(actor, task.assignee_id, task.department_id, status):
        raise PermissionError(f"Not allowed to set status to '{status.value}'")

    task.status = status.value
    task.updated_at = _utc_now()
    db.commit()
    db.refresh(task)

    add_comment(db, actor, task.id, f"Status updated to: {status.value}")
    logger.info(f"Task {task.id} status -> {status.value} by user {actor.id}")
    return task


def update_task_priority(db: Session, actor: Actor, task_id: int, new_priority: str) -> Task:
    try:
        priority = TaskPriority(new_priority)
    except ValueError:
        raise ValueError("Invalid priority level")

    task = get_visible_task(db, actor, task_id)
    if not can_change_task_priority(actor, task.assignee_id, task.department_id):
        raise PermissionError("Not allowed to change this task's priority")

    task.priority = priority.value
    task.updated_at = _utc_now()
    db.commit()
    db.refresh(task)

    logger.info(f"Task {task.id} priority -> {priority.value} by user {actor.id}")
    return task


def add_comment(db: Session, actor: Actor, task_id: int, text: str) -> Comment:
    get_visible_task(db, actor, task_id)
    text = (text or "").strip()
    if not text:
        raise ValueError("Comment cannot be empty")

    comment = Comment(task_id=task_id, user_id=actor.id, comment=text, created_at=_utc_now())
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment


def list_comments(db: Session, actor: Actor, task_id: int) -> list[Comment]:
    get_visible_task(db, actor, task_id)
    return (
        db.query(Comment)
        .filter(Comment.task_id == task_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )


# QUERIES
# ============================================================================

def list_tasks(
    db: Session,
    actor: Actor,
    status: Optional[str] = None,
    priority: Optional[str] = None,
) -> list[Task]:
    scope = task_visibility(actor)
    query = db.query(Task)

    if not scope.all_tasks:
        criteria = []
        if scope.department_id is not None:
            criteria.append(Task.department_id == scope.department_id)
        if scope.assignee_id is not None:
            criteria.append(Task.assignee_id == scope.assignee_id)
        if scope.assigned_by_id is not None:
            criteria.append(Task.assigned_by_id == scope.assigned_by_id)
        query = query.filter(or_(*criteria))

    if status:
        query = query.filter(Task.status == status)
    if priority:
        query = query.filter(Task.priority == priority)

    return query.order_by(Task.due_date.asc(), Task.id.asc()).all()


def is_overdue(task: Task, today: date) -> bool:
    return task.status not in CLOSED_STATUSES and task.due_date < today


def task_stats(db: Session, user_id: int, today: date) -> dict:
    """Completion figures for tasks assigned to ``user_id``."""
    tasks = db.query(Task).filter(Task.assignee_id == user_id).all()

    assigned = len(tasks)
    completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED.value)
    overdue = sum(1 for t in tasks if is_overdue(t, today))
    percentage = round(completed / assigned * 100, 1) if assigned else 0.0

    return {
        "assigned_tasks": assigned,
        "completed_tasks": completed,
        "incomplete_tasks": assigned - completed,
        "overdue_tasks": overdue,
        "task_completion_percentage": percentage,
    }
