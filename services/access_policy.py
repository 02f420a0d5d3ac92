"""
Access Policy
=============
Single source of truth for who may see or change what. Routers call these
before every read that exposes another user's data and before every mutation.

Roles form three levels:
- admin: everything
- leader: scoped to one department
- employee: own data only

A leader whose department (or whose target's department) is unknown gets no
department-scoped access. Boolean checks deny instead of raising.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


class Role(str, Enum):
    ADMIN = "admin"
    LEADER = "leader"
    EMPLOYEE = "employee"

    @classmethod
    def parse(cls, value) -> "Role":
        if isinstance(value, Role):
            return value
        normalized = str(value or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}")


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Statuses an assignee without department authority may move a task to
ASSIGNEE_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS})

ADMIN_EDITABLE_FIELDS = frozenset(
    {"username", "email", "full_name", "role", "department_id", "salary"}
)
LEADER_EDITABLE_FIELDS = frozenset({"username", "email", "full_name"})


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, passed explicitly into every policy check."""
    id: int
    role: Role
    department_id: Optional[int] = None

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(id=user.id, role=Role.parse(user.role), department_id=user.department_id)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_leader(self) -> bool:
        return self.role == Role.LEADER


@dataclass(frozen=True)
class TaskScope:
    """Filter for task listings: everything, or any of the given criteria."""
    all_tasks: bool = False
    department_id: Optional[int] = None
    assignee_id: Optional[int] = None
    assigned_by_id: Optional[int] = None


def same_department(actor: Actor, target_department_id: Optional[int]) -> bool:
    if actor.department_id is None or target_department_id is None:
        return False
    return actor.department_id == target_department_id


# PROFILES
# ============================================================================

def can_view_profile(actor: Actor, target_id: int, target_department_id: Optional[int]) -> bool:
    if actor.is_admin:
        return True
    if actor.id == target_id:
        return True
    if actor.is_leader:
        return same_department(actor, target_department_id)
    return False


def can_view_salary(actor: Actor, target_id: int) -> bool:
    return actor.is_admin or actor.id == target_id


def editable_profile_fields(
    actor: Actor, target_id: int, target_department_id: Optional[int]
) -> frozenset:
    if actor.is_admin:
        return ADMIN_EDITABLE_FIELDS
    if actor.is_leader and same_department(actor, target_department_id):
        return LEADER_EDITABLE_FIELDS
    return frozenset()


def can_edit_profile(actor: Actor, target_id: int, target_department_id: Optional[int]) -> bool:
    return bool(editable_profile_fields(actor, target_id, target_department_id))


def check_profile_update(
    actor: Actor,
    target_id: int,
    target_department_id: Optional[int],
    fields: Iterable[str],
) -> None:
    """Raise PermissionError unless every field in ``fields`` may be changed by ``actor``."""
    allowed = editable_profile_fields(actor, target_id, target_department_id)
    if not allowed:
        raise PermissionError("Not allowed to edit this profile")
    forbidden = sorted(set(fields) - allowed)
    if forbidden:
        raise PermissionError(f"Not allowed to change: {', '.join(forbidden)}")


# TASKS
# ============================================================================

def can_assign_task(
    actor: Actor, assignee_role, assignee_department_id: Optional[int]
) -> bool:
    if actor.is_admin:
        return True
    if actor.is_leader:
        try:
            role = Role.parse(assignee_role)
        except ValueError:
            return False
        return role == Role.EMPLOYEE and same_department(actor, assignee_department_id)
    return False


def can_update_task_status(
    actor: Actor,
    task_assignee_id: int,
    task_department_id: Optional[int],
    new_status,
) -> bool:
    try:
        status = TaskStatus(new_status)
    except ValueError:
        return False

    if actor.is_admin:
        return True
    if actor.is_leader and same_department(actor, task_department_id):
        return True
    if actor.id == task_assignee_id:
        return status in ASSIGNEE_STATUSES
    return False


def can_change_task_priority(
    actor: Actor, task_assignee_id: int, task_department_id: Optional[int]
) -> bool:
    """Priority is not a status: any assignee may reorder their own work."""
    if actor.is_admin:
        return True
    if actor.is_leader and same_department(actor, task_department_id):
        return True
    return actor.id == task_assignee_id


def task_visibility(actor: Actor) -> TaskScope:
    if actor.is_admin:
        return TaskScope(all_tasks=True)
    if actor.is_leader:
        return TaskScope(
            department_id=actor.department_id,
            assignee_id=actor.id,
            assigned_by_id=actor.id,
        )
    return TaskScope(assignee_id=actor.id, assigned_by_id=actor.id)


def can_view_task(
    actor: Actor,
    task_assignee_id: int,
    task_assigned_by_id: int,
    task_department_id: Optional[int],
) -> bool:
    scope = task_visibility(actor)
    if scope.all_tasks:
        return True
    if actor.id in (task_assignee_id, task_assigned_by_id):
        return True
    return scope.department_id is not None and same_department(actor, task_department_id)


# LEAVE
# ============================================================================

def can_review_leave(
    actor: Actor, requester_id: int, requester_department_id: Optional[int]
) -> bool:
    if actor.is_admin:
        return True
    if actor.is_leader and actor.id != requester_id:
        return same_department(actor, requester_department_id)
    return False
