"""
Attendance Policy
=================
Pure check-in / auto-checkout rules. Every function takes the local wall-clock
time explicitly; nothing here touches the database or the system clock.

Daily state machine (Sundays exempt):

    not_checked_in --check-in 10:00-18:00--> checked_in --18:00 (automatic)--> checked_out

- Check-in within [10:00:00, 10:15:00] is a full day, within (10:15:00, 18:00:00) a half day.
- Check-out is never user-triggered: once 18:00 passes on the record's day,
  check_out is set to exactly 18:00:00 of that day.
- Pay cycles run from the 26th to the 25th of the following month.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional

from dateutil.relativedelta import relativedelta


CHECK_IN_OPENS = time(10, 0, 0)
FULL_DAY_CUTOFF = time(10, 15, 0)
CHECK_IN_CLOSES = time(18, 0, 0)
AUTO_CHECKOUT_AT = time(18, 0, 0)

CYCLE_START_DAY = 26
CYCLE_END_DAY = 25

SUNDAY = 6

MSG_SUNDAY = "Today is Sunday - No attendance required"
MSG_NOT_OPEN = "Check-in opens at 10:00 AM"
MSG_PASSED = "Check-in time has passed"
MSG_OPEN = "Check-in is open"
MSG_CHECKED_IN = "Check-out happens automatically at 6:00 PM"
MSG_CHECKED_OUT = "Attendance marked for today"


class AttendanceType(str, Enum):
    FULL_DAY = "full_day"
    HALF_DAY = "half_day"


class AttendanceState(str, Enum):
    NOT_CHECKED_IN = "not_checked_in"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    EXEMPT = "exempt"


class CheckInNotAllowed(ValueError):
    """Check-in attempted outside the allowed window. No state change."""


@dataclass(frozen=True)
class PayCycle:
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def working_days(self, until: Optional[date] = None) -> int:
        """Non-Sunday days from cycle start through ``until`` (capped at cycle end)."""
        last = min(until, self.end) if until else self.end
        if last < self.start:
            return 0
        total = (last - self.start).days + 1
        return sum(
            1 for offset in range(total)
            if is_working_day(self.start + timedelta(days=offset))
        )


@dataclass(frozen=True)
class RecordSnapshot:
    """The persisted fields of one (user, date) attendance row the policy reads."""
    day: date
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    attendance_type: Optional[str] = None
    cycle_start_date: Optional[date] = None
    cycle_end_date: Optional[date] = None


@dataclass(frozen=True)
class DayStatus:
    state: AttendanceState
    can_check_in: bool
    message: str
    attendance_type: Optional[AttendanceType]
    cycle: PayCycle
    checkout_due: Optional[datetime] = None


def is_working_day(day: date) -> bool:
    return day.weekday() != SUNDAY


def pay_cycle(today: date) -> PayCycle:
    """
    Cycle containing ``today``.

    day >= 26 -> [26th of this month, 25th of next month]
    otherwise -> [26th of previous month, 25th of this month]
    """
    if today.day >= CYCLE_START_DAY:
        start = today.replace(day=CYCLE_START_DAY)
    else:
        start = today.replace(day=CYCLE_START_DAY) - relativedelta(months=1)
    end = (start + relativedelta(months=1)).replace(day=CYCLE_END_DAY)
    return PayCycle(start=start, end=end)


def classify_check_in(now: datetime) -> AttendanceType:
    """Attendance type for a check-in at ``now``; raises CheckInNotAllowed outside the window."""
    if not is_working_day(now.date()):
        raise CheckInNotAllowed(MSG_SUNDAY)

    clock = now.time().replace(microsecond=0)
    if clock < CHECK_IN_OPENS:
        raise CheckInNotAllowed(MSG_NOT_OPEN)
    if clock >= CHECK_IN_CLOSES:
        raise CheckInNotAllowed(MSG_PASSED)
    if clock <= FULL_DAY_CUTOFF:
        return AttendanceType.FULL_DAY
    return AttendanceType.HALF_DAY


def auto_checkout_time(day: date) -> datetime:
    return datetime.combine(day, AUTO_CHECKOUT_AT)


def due_checkout(
    day: date,
    check_in: Optional[datetime],
    check_out: Optional[datetime],
    now: datetime,
) -> Optional[datetime]:
    """
    Checkout timestamp to persist for an open record, or None.

    The value is always 18:00:00 of the record's own day, never ``now``.
    """
    if check_in is None or check_out is not None:
        return None
    if not is_working_day(day):
        return None
    cutoff = auto_checkout_time(day)
    if now < cutoff:
        return None
    return cutoff


def evaluate_day(now: datetime, record: Optional[RecordSnapshot]) -> DayStatus:
    """
    Display state for today. A stored record wins over derived defaults;
    cycle bounds are derived only when no record exists or the row lacks them.
    """
    today = now.date()
    cycle = pay_cycle(today)
    if record and record.cycle_start_date and record.cycle_end_date:
        cycle = PayCycle(record.cycle_start_date, record.cycle_end_date)

    if not is_working_day(today):
        return DayStatus(
            state=AttendanceState.EXEMPT,
            can_check_in=False,
            message=MSG_SUNDAY,
            attendance_type=None,
            cycle=cycle,
        )

    attendance_type = None
    if record and record.attendance_type:
        attendance_type = AttendanceType(record.attendance_type)

    if record is None or record.check_in is None:
        try:
            classify_check_in(now)
        except CheckInNotAllowed as exc:
            return DayStatus(
                state=AttendanceState.NOT_CHECKED_IN,
                can_check_in=False,
                message=str(exc),
                attendance_type=None,
                cycle=cycle,
            )
        return DayStatus(
            state=AttendanceState.NOT_CHECKED_IN,
            can_check_in=True,
            message=MSG_OPEN,
            attendance_type=None,
            cycle=cycle,
        )

    if record.check_out is not None:
        return DayStatus(
            state=AttendanceState.CHECKED_OUT,
            can_check_in=False,
            message=MSG_CHECKED_OUT,
            attendance_type=attendance_type,
            cycle=cycle,
        )

    due = due_checkout(record.day, record.check_in, record.check_out, now)
    if due is not None:
        return DayStatus(
            state=AttendanceState.CHECKED_OUT,
            can_check_in=False,
            message=MSG_CHECKED_OUT,
            attendance_type=attendance_type,
            cycle=cycle,
            checkout_due=due,
        )

    return DayStatus(
        state=AttendanceState.CHECKED_IN,
        can_check_in=False,
        message=MSG_CHECKED_IN,
        attendance_type=attendance_type,
        cycle=cycle,
    )
