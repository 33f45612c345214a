from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Daily attendance status stored per (employee, date)."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LEAVE = "LEAVE"


class AttendanceSource(str, Enum):
    """Who produced the record: HR staff, an automated system, or the employee."""

    HR = "HR"
    SYSTEM = "SYSTEM"
    SELF = "SELF"


class EmployeeStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    EXITED = "EXITED"


class MonthCloseStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class AuditAction(str, Enum):
    MARK = "MARK"
    OVERRIDE = "OVERRIDE"
    BULK_MARK = "BULK_MARK"
    ATTENDANCE_SYNC_APPLIED = "ATTENDANCE_SYNC_APPLIED"
    ATTENDANCE_SYNC_REVERTED = "ATTENDANCE_SYNC_REVERTED"


class BulkOutcome(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    FAILED = "FAILED"


class GrantScope(str, Enum):
    COMPANY = "COMPANY"
    DIVISION = "DIVISION"


class Permission(str, Enum):
    """Permission codes checked by the attendance module."""

    ATTENDANCE_READ = "ATTENDANCE_READ"
    ATTENDANCE_WRITE = "ATTENDANCE_WRITE"
    ATTENDANCE_OVERRIDE = "ATTENDANCE_OVERRIDE"
    ATTENDANCE_BULK_WRITE = "ATTENDANCE_BULK_WRITE"
    SYSTEM_FULL_ACCESS = "SYSTEM_FULL_ACCESS"
