from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, DeclarativeBase
from datetime import datetime, timezone

# TIMEZONE ARCHITECTURE NOTES:
# =================================
# - ALL DateTime fields store UTC time as naive datetime
# - Date fields (attendance date, pay-cycle bounds, leave dates, due dates) are
#   calendar dates in the app timezone (services.timezone_utils.APP_TIMEZONE)

def _utc_now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


# ============================================================================
# DEPARTMENT MODEL
# ============================================================================

class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime, default=_utc_now)

    users = relationship("User", back_populates="department")

    def __repr__(self):
        return f"<Department {self.name}>"


# ============================================================================
# USER MODEL
# ============================================================================

class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(150), nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # admin / leader / employee (normalised through services.access_policy.Role)
    role = Column(String(20), nullable=False, default="employee")
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    salary = Column(Numeric(12, 2), nullable=False, default=0)
    leave_taken = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=_utc_now)
    updated_at = Column(DateTime, nullable=False, default=_utc_now)

    # Relationships
    department = relationship("Department", back_populates="users")
    attendance_records = relationship("Attendance", back_populates="user")
    leave_requests = relationship(
        "LeaveRequest", foreign_keys="LeaveRequest.user_id", back_populates="user"
    )
    blacklisted_tokens = relationship("TokenBlacklist", back_populates="user")

    @property
    def department_name(self) -> str | None:
        return self.department.name if self.department else None

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"


# ============================================================================
# TOKEN BLACKLIST MODEL
# ============================================================================

class TokenBlacklist(Base):
    __tablename__ = 'token_blacklist'

    id = Column(Integer, primary_key=True, index=True)
    jti = Column(String(50), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    username = Column(String(50), nullable=False)
    blacklisted_at = Column(DateTime, default=_utc_now)
    token_exp = Column(DateTime, nullable=False)
    reason = Column(String(50), default="user_logout")

    user = relationship("User", back_populates="blacklisted_tokens")

    __table_args__ = (
        Index('idx_blacklist_user_id', 'user_id'),
        Index('idx_blacklist_exp', 'token_exp'),
    )


# ============================================================================
# ATTENDANCE MODEL
# ============================================================================

class Attendance(Base):
    __tablename__ = 'attendance'

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    date = Column(Date, nullable=False)
    check_in = Column(DateTime, nullable=True)
    check_out = Column(DateTime, nullable=True)
    # Stored redundantly at check-in; never recomputed afterwards
    cycle_start_date = Column(Date, nullable=True)
    cycle_end_date = Column(Date, nullable=True)
    attendance_type = Column(String(20), nullable=True)

    created_at = Column(DateTime, nullable=False, default=_utc_now)
    updated_at = Column(DateTime, nullable=False, default=_utc_now)

    user = relationship("User", back_populates="attendance_records")

    __table_args__ = (
        UniqueConstraint('user_id', 'date', name='uq_attendance_user_date'),
        Index('idx_attendance_open', 'check_out', 'date'),
    )

    def __repr__(self):
        return f"<Attendance user={self.user_id} date={self.date}>"


# ============================================================================
# TASK MODELS
# ============================================================================

class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    priority = Column(String(20), nullable=False, default="medium")

    assignee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    assigned_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True, index=True)
    assignment_notes = Column(Text, nullable=True)
    due_date = Column(Date, nullable=False)

    created_at = Column(DateTime, nullable=False, default=_utc_now)
    updated_at = Column(DateTime, nullable=False, default=_utc_now)
    assigned_at = Column(DateTime, nullable=False, default=_utc_now)

    assignee = relationship("User", foreign_keys=[assignee_id])
    assigned_by = relationship("User", foreign_keys=[assigned_by_id])
    department = relationship("Department")
    comments = relationship(
        "Comment", back_populates="task", order_by="Comment.created_at"
    )

    def __repr__(self):
        return f"<Task {self.id} {self.status}>"


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utc_now)

    task = relationship("Task", back_populates="comments")
    user = relationship("User")


# ============================================================================
# LEAVE REQUEST MODEL
# ============================================================================

class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    leave_type = Column(String(50), nullable=False)
    reason = Column(Text, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)

    # Both derived once at submission
    days_count = Column(Integer, nullable=False)
    salary_deducted = Column(Numeric(12, 2), nullable=False, default=0)

    status = Column(String(20), nullable=False, default="pending")  # pending, approved, rejected
    reviewed_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=_utc_now)
    updated_at = Column(DateTime, nullable=False, default=_utc_now)

    user = relationship("User", foreign_keys=[user_id], back_populates="leave_requests")
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_id])

    __table_args__ = (
        Index('idx_leave_user_status', 'user_id', 'status'),
    )
