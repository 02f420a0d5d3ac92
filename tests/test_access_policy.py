import pytest

from services.access_policy import (
    Actor,
    Role,
    TaskStatus,
    can_assign_task,
    can_change_task_priority,
    can_edit_profile,
    can_review_leave,
    can_update_task_status,
    can_view_profile,
    can_view_salary,
    can_view_task,
    check_profile_update,
    editable_profile_fields,
)

ADMIN = Actor(id=1, role=Role.ADMIN, department_id=None)
LEADER = Actor(id=2, role=Role.LEADER, department_id=3)
NO_DEPT_LEADER = Actor(id=4, role=Role.LEADER, department_id=None)
EMPLOYEE = Actor(id=5, role=Role.EMPLOYEE, department_id=3)


def test_role_parsing_normalises_case_and_whitespace():
    assert Role.parse(" Admin ") == Role.ADMIN
    assert Role.parse("LEADER") == Role.LEADER
    with pytest.raises(ValueError):
        Role.parse("super_admin")


# Profiles

@pytest.mark.parametrize("target_id, target_dept", [(1, None), (99, 3), (99, 4), (99, None)])
def test_admin_sees_every_profile(target_id, target_dept):
    assert can_view_profile(ADMIN, target_id, target_dept)


def test_employee_sees_only_own_profile():
    assert can_view_profile(EMPLOYEE, EMPLOYEE.id, 3)
    assert not can_view_profile(EMPLOYEE, 99, 3)
    assert not can_view_profile(EMPLOYEE, 99, 4)


def test_leader_sees_own_department():
    assert can_view_profile(LEADER, 99, 3)
    assert not can_view_profile(LEADER, 99, 4)
    assert not can_view_profile(LEADER, 99, None)


def test_leader_without_department_sees_only_self():
    assert can_view_profile(NO_DEPT_LEADER, NO_DEPT_LEADER.id, None)
    assert not can_view_profile(NO_DEPT_LEADER, 99, None)
    assert not can_view_profile(NO_DEPT_LEADER, 99, 3)


def test_salary_visible_to_admin_and_owner_only():
    assert can_view_salary(ADMIN, 99)
    assert can_view_salary(LEADER, LEADER.id)
    assert not can_view_salary(LEADER, 99)
    assert can_view_salary(EMPLOYEE, EMPLOYEE.id)
    assert not can_view_salary(EMPLOYEE, 99)


def test_profile_editing():
    assert can_edit_profile(ADMIN, 99, 4)
    assert can_edit_profile(LEADER, 99, 3)
    assert not can_edit_profile(LEADER, 99, 4)
    assert not can_edit_profile(EMPLOYEE, EMPLOYEE.id, 3)
    assert "salary" in editable_profile_fields(ADMIN, 99, 4)


def test_leader_cannot_change_role_or_department():
    check_profile_update(LEADER, 99, 3, ["full_name", "email"])
    with pytest.raises(PermissionError, match="role"):
        check_profile_update(LEADER, 99, 3, ["full_name", "role"])
    with pytest.raises(PermissionError, match="department_id"):
        check_profile_update(LEADER, LEADER.id, 3, ["department_id"])


# Tasks

def test_task_assignment():
    assert can_assign_task(ADMIN, "leader", 4)
    assert can_assign_task(LEADER, "employee", 3)
    assert not can_assign_task(LEADER, "employee", 4)
    assert not can_assign_task(LEADER, "leader", 3)
    assert not can_assign_task(NO_DEPT_LEADER, "employee", None)
    assert not can_assign_task(EMPLOYEE, "employee", 3)


@pytest.mark.parametrize("status", ["pending", "in_progress"])
def test_assignee_may_move_between_pending_and_in_progress(status):
    assert can_update_task_status(EMPLOYEE, EMPLOYEE.id, 3, status)


@pytest.mark.parametrize("status", ["completed", "cancelled", "on_hold"])
@pytest.mark.parametrize("task_dept", [3, 4, None])
def test_assignee_cannot_close_task_in_any_department(status, task_dept):
    assert not can_update_task_status(EMPLOYEE, EMPLOYEE.id, task_dept, status)


def test_leader_manages_department_tasks():
    assert can_update_task_status(LEADER, 99, 3, TaskStatus.COMPLETED)
    assert not can_update_task_status(LEADER, 99, 4, TaskStatus.COMPLETED)
    assert can_update_task_status(LEADER, LEADER.id, 4, "in_progress")
    assert not can_update_task_status(ADMIN, 99, 3, "archived")


def test_task_priority_changes():
    assert can_change_task_priority(ADMIN, 99, 4)
    assert can_change_task_priority(LEADER, 99, 3)
    assert not can_change_task_priority(LEADER, 99, 4)
    assert not can_change_task_priority(NO_DEPT_LEADER, 99, None)
    assert can_change_task_priority(EMPLOYEE, EMPLOYEE.id, 3)
    assert not can_change_task_priority(EMPLOYEE, 99, 3)


def test_task_visibility():
    assert can_view_task(ADMIN, 99, 98, 4)
    assert can_view_task(LEADER, 99, 98, 3)
    assert not can_view_task(LEADER, 99, 98, 4)
    assert can_view_task(EMPLOYEE, EMPLOYEE.id, LEADER.id, 3)
    assert not can_view_task(EMPLOYEE, 99, LEADER.id, 3)


# Leave

def test_leave_review():
    assert can_review_leave(ADMIN, 99, None)
    assert can_review_leave(LEADER, 99, 3)
    assert not can_review_leave(LEADER, LEADER.id, 3)
    assert not can_review_leave(LEADER, 99, 4)
    assert not can_review_leave(EMPLOYEE, 99, 3)
