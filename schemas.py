from pydantic import BaseModel, field_serializer, Field, validator, EmailStr
from typing import Optional, Literal
from datetime import datetime, date
from decimal import Decimal
from utils import to_local

RoleName = Literal["admin", "leader", "employee"]
TaskStatusName = Literal["pending", "in_progress", "completed", "on_hold", "cancelled"]
TaskPriorityName = Literal["critical", "high", "medium", "low"]


# User schemas
class UserOut(BaseModel):
    id: int
    username: str
    full_name: str
    email: str
    role: str
    department_id: Optional[int] = None

    class Config:
        from_attributes = True

class Token(BaseModel):
    access_token: str
    token_type: str
    expires_in: int  # Seconds until expiry
    username: str
    role: str

class LogoutResponse(BaseModel):
    """Response after successful logout"""
    message: str
    success: bool
    username: str


class UserProfileOut(BaseModel):
    """
    Profile as shown to the caller. ``salary`` is only filled in when the
    caller may see it (admin, or the user themself).
    """
    id: int
    username: str
    email: str
    full_name: str
    role: str
    department_id: Optional[int] = None
    department_name: Optional[str] = None
    leave_taken: int = 0
    salary: Optional[Decimal] = None
    created_at: datetime

    @field_serializer("created_at")
    def serialize_dates(self, value):
        return to_local(value) if value else None

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    """Profile fields; which of them a caller may change is decided by the access policy."""
    username: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, min_length=1, max_length=150)
    role: Optional[RoleName] = None
    department_id: Optional[int] = None
    salary: Optional[Decimal] = Field(None, ge=0)

    class Config:
        json_schema_extra = {
            "example": {
                "full_name": "Asha Verma",
                "email": "asha@company.com"
            }
        }


class SalaryOut(BaseModel):
    user_id: int
    total_salary: Decimal
    deductions: Decimal
    net_salary: Decimal
    cycle_start_date: date
    cycle_end_date: date


# Password
class ChangePasswordRequest(BaseModel):
    """
    Schema for changing password while logged in.

    Example:
        {
            "current_password": "OldPass123!",
            "new_password": "NewPass456!",
            "confirm_password": "NewPass456!"
        }
    """
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, description="New password (minimum 8 characters)")
    confirm_password: str = Field(..., min_length=8)


class PasswordChangeResponse(BaseModel):
    success: bool
    message: str
    changed_at: datetime


# DEPARTMENT SCHEMAS
class DepartmentCreate(BaseModel):
    """Schema for creating departments."""
    name: str = Field(..., min_length=1, max_length=100)


class DepartmentOut(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


# Attendance
class AttendanceTodayOut(BaseModel):
    """Today's attendance card. Times are local wall-clock strings."""
    date: date
    state: Literal["not_checked_in", "checked_in", "checked_out", "exempt"]
    can_check_in: bool
    message: str
    attendance_type: Optional[Literal["full_day", "half_day"]] = None
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    cycle_start_date: date
    cycle_end_date: date


class AttendanceRecordOut(BaseModel):
    id: int
    user_id: int
    date: date
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    attendance_type: Optional[str] = None
    cycle_start_date: Optional[date] = None
    cycle_end_date: Optional[date] = None

    @field_serializer("check_in", "check_out")
    def serialize_dates(self, value):
        return to_local(value) if value else None

    class Config:
        from_attributes = True


class AttendanceCycleSummaryOut(BaseModel):
    cycle_start_date: date
    cycle_end_date: date
    total_working_days: int
    present_days: int
    half_days: int
    absent_days: int
    attendance_percentage: float
    rating: Literal["Good", "Average", "Poor"]
    available_leaves: int


# Tasks
class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    assignee_id: int
    due_date: date
    priority: TaskPriorityName = "medium"
    assignment_notes: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Prepare monthly report",
                "description": "Compile attendance figures for the cycle",
                "assignee_id": 12,
                "due_date": "2026-03-25",
                "priority": "high"
            }
        }


class PersonalTaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    is_completed: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Called back the Mehta account",
                "description": "Follow-up on the March order",
                "is_completed": True
            }
        }


class TaskStatusUpdate(BaseModel):
    status: TaskStatusName


class TaskPriorityUpdate(BaseModel):
    priority: TaskPriorityName


class TaskOut(BaseModel):
    id: int
    title: str
    description: str
    status: str
    priority: str
    assignee_id: int
    assigned_by_id: int
    department_id: Optional[int] = None
    assignment_notes: Optional[str] = None
    due_date: date
    created_at: datetime
    updated_at: datetime
    assigned_at: datetime

    @field_serializer("created_at", "updated_at", "assigned_at")
    def serialize_dates(self, value):
        return to_local(value) if value else None

    class Config:
        from_attributes = True


class TaskStatsOut(BaseModel):
    assigned_tasks: int
    completed_tasks: int
    incomplete_tasks: int
    overdue_tasks: int
    task_completion_percentage: float


class CommentCreate(BaseModel):
    comment: str = Field(..., min_length=1, max_length=2000)


class CommentOut(BaseModel):
    id: int
    task_id: int
    user_id: int
    comment: str
    created_at: datetime

    @field_serializer("created_at")
    def serialize_dates(self, value):
        return to_local(value) if value else None

    class Config:
        from_attributes = True


# Leave
class LeaveRequestCreate(BaseModel):
    """
    Schema for submitting a leave request.
    days_count and salary_deducted are computed by the server.
    """
    leave_type: str = Field(..., min_length=1, max_length=50, description="Type of leave (Sick, Casual, etc.)")
    reason: str = Field(..., min_length=1, max_length=500)
    start_date: date
    end_date: date
    notes: Optional[str] = Field(None, max_length=500)

    @validator('end_date')
    def validate_dates(cls, v, values):
        if 'start_date' in values and v < values['start_date']:
            raise ValueError('end_date must be >= start_date')
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "leave_type": "Sick Leave",
                "reason": "Fever",
                "start_date": "2026-03-02",
                "end_date": "2026-03-04"
            }
        }


class LeaveReviewRequest(BaseModel):
    action: Literal["approve", "reject"]


class LeaveRequestOut(BaseModel):
    id: int
    user_id: int
    leave_type: str
    reason: str
    start_date: date
    end_date: date
    notes: Optional[str] = None
    days_count: int
    salary_deducted: Decimal
    status: str
    reviewed_by_id: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime

    @field_serializer("reviewed_at", "created_at")
    def serialize_dates(self, value):
        return to_local(value) if value else None

    class Config:
        from_attributes = True


class LeaveSummaryOut(BaseModel):
    cycle_start_date: date
    cycle_end_date: date
    approved_days: int
    pending_requests: int
    remaining_free_days: int
