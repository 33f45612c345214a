"""Attendance write policy.

Pure, stateless rules used by the attendance service. Nothing here touches the
database; callers pass in whatever facts (today, employee, flags) the rule needs.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from ..common.datetime_utils import month_end, parse_iso_date
from ..core.enums import AttendanceSource, AttendanceStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..employees.model import Employee


def normalize_attendance_date(value) -> date:
    return parse_iso_date(value, "attendanceDate")


def normalize_status(value) -> AttendanceStatus:
    if isinstance(value, AttendanceStatus):
        return value
    s = str(value or "").strip().upper()
    try:
        return AttendanceStatus(s)
    except ValueError:
        raise ValidationError("Invalid attendance status")


def normalize_source(value) -> AttendanceSource:
    if isinstance(value, AttendanceSource):
        return value
    s = str(value or "").strip().upper()
    try:
        return AttendanceSource(s)
    except ValueError:
        raise ValidationError("Invalid attendance source")


def assert_employee_active(employee: Optional[Employee]) -> Employee:
    if employee is None:
        raise NotFoundError("Employee not found")
    if not employee.is_active:
        raise ValidationError("Only ACTIVE employees can be marked")
    return employee


def assert_within_employment_period(employee: Employee, attendance_date: date) -> None:
    start = employee.employment_start
    if start and attendance_date < start:
        raise ValidationError("Attendance date must be within employment period")


def assert_attendance_date_allowed(attendance_date: date, today: date) -> None:
    if attendance_date < today:
        raise ValidationError("Past dates are not allowed", code="PAST_DATE")
    if attendance_date > today:
        raise ValidationError("Future dates are not allowed", code="FUTURE_DATE")


def assert_self_marking_allowed(
    *,
    actor_id: str,
    employee_id: str,
    source: AttendanceSource,
    self_mark_enabled: bool,
) -> None:
    if source != AttendanceSource.SELF:
        return
    if not self_mark_enabled:
        raise AuthorizationError("Self marking is disabled")
    if str(actor_id) != str(employee_id):
        raise AuthorizationError("Cannot self mark for another employee")


def month_end_for(attendance_date: date) -> date:
    return month_end(attendance_date)
