from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceSource, AttendanceStatus, MonthCloseStatus
from ..employees.model import Employee
from .model import Absent, AttendanceRecord, NewAttendanceRecord, Present, RecordLookup


class AttendanceStore(Protocol):
    """Storage interface for attendance records, bound to one open transaction.

    Note (DIP): the service depends on this interface, not on a concrete database.
    """

    def today(self) -> date:
        """The store's current date; single source of truth for day boundaries."""

        raise NotImplementedError

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def get_record(
        self, employee_id: str, attendance_date: date, *, locking: bool = False
    ) -> Optional[AttendanceRecord]:
        """``locking`` reads the latest committed row instead of the transaction snapshot."""

        raise NotImplementedError

    def get_record_by_id(self, record_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def insert_record(self, row: NewAttendanceRecord) -> Optional[AttendanceRecord]:
        """Conflict-safe insert: None when (employee_id, attendance_date) is already taken."""

        raise NotImplementedError

    def update_record(
        self,
        record_id: str,
        *,
        status: AttendanceStatus,
        source: AttendanceSource,
        note: Optional[str],
        marked_by: str,
        expected_version: Optional[int] = None,
    ) -> Optional[AttendanceRecord]:
        """Bump version and refresh marked_at/updated_at.

        Returns None only when ``expected_version`` was given and did not match.
        """

        raise NotImplementedError

    def list_records(
        self,
        *,
        start_date: date,
        end_date: date,
        division_id: Optional[str] = None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_employees(self, *, division_id: Optional[str] = None) -> Sequence[Employee]:
        """ACTIVE employees ordered by employee code."""

        raise NotImplementedError

    def get_month_close_status(self, month_end: date) -> MonthCloseStatus:
        raise NotImplementedError


def lookup_record(store: AttendanceStore, employee_id: str, attendance_date: date) -> RecordLookup:
    existing = store.get_record(employee_id, attendance_date)
    if existing is None:
        return Absent()
    return Present(existing)
