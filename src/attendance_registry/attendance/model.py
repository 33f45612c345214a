from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Sequence, Union

from ..common.datetime_utils import iso
from ..core.enums import AttendanceSource, AttendanceStatus, BulkOutcome, MonthCloseStatus
from ..employees.model import Employee


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one (employee, calendar date) attendance entry."""

    record_id: str
    employee_id: str
    attendance_date: date
    status: AttendanceStatus
    source: AttendanceSource
    note: Optional[str]
    marked_by: str
    marked_at: datetime
    created_at: datetime
    updated_at: datetime
    version: int

    def snapshot(self) -> dict:
        """Before/after payload written to the audit log."""
        return {
            "employee_id": self.employee_id,
            "attendance_date": iso(self.attendance_date),
            "status": self.status.value,
            "source": self.source.value,
            "note": self.note,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "employeeId": self.employee_id,
            "attendanceDate": iso(self.attendance_date),
            "status": self.status.value,
            "source": self.source.value,
            "note": self.note,
            "markedBy": self.marked_by,
            "markedAt": self.marked_at.isoformat(),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "version": self.version,
        }


@dataclass(frozen=True)
class NewAttendanceRecord:
    """Fields for a conflict-safe insert."""

    record_id: str
    employee_id: str
    attendance_date: date
    status: AttendanceStatus
    source: AttendanceSource
    note: Optional[str]
    marked_by: str
    version: int = 1


@dataclass(frozen=True)
class Absent:
    """Lookup result: no record exists yet for the pair."""


@dataclass(frozen=True)
class Present:
    """Lookup result: the pair already has a record."""

    record: AttendanceRecord


RecordLookup = Union[Absent, Present]


@dataclass(frozen=True)
class MarkResult:
    record: AttendanceRecord
    month_status: MonthCloseStatus

    def to_dict(self) -> dict:
        return {"record": self.record.to_dict(), "monthStatus": self.month_status.value}


@dataclass(frozen=True)
class BulkMarkItem:
    employee_id: str
    status: str
    note: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: dict) -> "BulkMarkItem":
        return cls(
            employee_id=str(raw.get("employeeId") or raw.get("employee_id") or ""),
            status=raw.get("status"),
            note=raw.get("note"),
            reason=raw.get("reason"),
        )


@dataclass(frozen=True)
class BulkItemResult:
    employee_id: str
    attendance_date: date
    status: str
    outcome: BulkOutcome
    error: Optional[str] = None
    error_code: Optional[str] = None

    def to_dict(self) -> dict:
        out = {
            "employeeId": self.employee_id,
            "attendanceDate": iso(self.attendance_date),
            "status": self.status,
            "outcome": self.outcome.value,
        }
        if self.error is not None:
            out["error"] = self.error
            out["errorCode"] = self.error_code
        return out


@dataclass(frozen=True)
class BulkMarkResult:
    results: List[BulkItemResult] = field(default_factory=list)

    @property
    def failed(self) -> List[BulkItemResult]:
        return [r for r in self.results if r.outcome == BulkOutcome.FAILED]

    def to_dict(self) -> dict:
        return {"results": [r.to_dict() for r in self.results]}


@dataclass(frozen=True)
class MonthAttendance:
    """Read-model for the month grid."""

    month: str
    start_date: date
    end_date: date
    month_status: MonthCloseStatus
    today: date
    employees: Sequence[Employee]
    records: Sequence[AttendanceRecord]

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "startDate": iso(self.start_date),
            "endDate": iso(self.end_date),
            "monthStatus": self.month_status.value,
            "todayDate": iso(self.today),
            "employees": [
                {
                    "id": e.employee_id,
                    "employeeCode": e.employee_code,
                    "firstName": e.first_name,
                    "lastName": e.last_name,
                    "divisionId": e.division_id,
                }
                for e in self.employees
            ],
            "records": [r.to_dict() for r in self.records],
        }


@dataclass
class SummaryRow:
    employee_id: str
    employee_code: str
    first_name: str
    last_name: str
    joining_date: Optional[date]
    present_days: int = 0
    absent_days: int = 0
    leave_days: int = 0
    total_marked_days: int = 0

    def to_dict(self) -> dict:
        return {
            "employeeId": self.employee_id,
            "employeeCode": self.employee_code,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "presentDays": self.present_days,
            "absentDays": self.absent_days,
            "leaveDays": self.leave_days,
            "totalMarkedDays": self.total_marked_days,
        }


@dataclass(frozen=True)
class AttendanceSummary:
    month: str
    start_date: date
    end_date: date
    month_status: MonthCloseStatus
    working_days: int
    rows: Sequence[SummaryRow]

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "startDate": iso(self.start_date),
            "endDate": iso(self.end_date),
            "monthStatus": self.month_status.value,
            "workingDays": self.working_days,
            "rows": [r.to_dict() for r in self.rows],
        }
