from __future__ import annotations

import copy
import itertools
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional

import pytest

from attendance_registry.access.service import AccessService
from attendance_registry.attendance.model import AttendanceRecord, NewAttendanceRecord
from attendance_registry.attendance.service import AttendanceService
from attendance_registry.attendance.transaction import AttendanceTransaction
from attendance_registry.audit.model import AuditLogEntry
from attendance_registry.core.constants import MONTH_CLOSE_ENABLED_KEY, SELF_MARK_ENABLED_KEY
from attendance_registry.core.enums import AttendanceSource, AttendanceStatus, GrantScope, MonthCloseStatus, Permission
from attendance_registry.core.exceptions import AuditWriteError
from attendance_registry.employees.model import Employee
from attendance_registry.settings.service import FeatureFlags

TODAY = date(2026, 3, 16)
NOW = datetime(2026, 3, 16, 9, 0, 0)

DIV_OPS = "div-ops"
DIV_SALES = "div-sales"

HR_PERMISSIONS = [
    Permission.ATTENDANCE_READ.value,
    Permission.ATTENDANCE_WRITE.value,
    Permission.ATTENDANCE_BULK_WRITE.value,
]
HR_OVERRIDE_PERMISSIONS = HR_PERMISSIONS + [Permission.ATTENDANCE_OVERRIDE.value]


class InMemoryDatabase:
    """Tables the attendance module reads and writes, with snapshot rollback."""

    def __init__(self, today: date = TODAY):
        self.today = today
        self.employees: dict[str, Employee] = {}
        self.records: dict[str, AttendanceRecord] = {}
        self.audit: list[AuditLogEntry] = []
        self.month_close: dict[date, MonthCloseStatus] = {}
        self.grants: dict[str, list[tuple[str, GrantScope, Optional[str]]]] = {}
        self.config: dict[str, str] = {}
        self.commits = 0
        self.rollbacks = 0
        # Rows committed by another transaction after ours started: only locking reads see them.
        self.concurrent_ids: set[str] = set()
        self.locking_reads = 0
        # Test hooks: run before insert (simulate a racing writer) / fail audit writes.
        self.before_insert: Optional[Callable[[NewAttendanceRecord], None]] = None
        self.fail_audit_on: Optional[Callable[[AuditLogEntry], bool]] = None

    def add_employee(self, employee_id: str, **kwargs) -> Employee:
        fields = dict(
            employee_code=employee_id.upper(),
            first_name=employee_id.title(),
            last_name="Doe",
            status="ACTIVE",
            division_id=DIV_OPS,
            joining_date=date(2025, 1, 1),
            created_at_date=date(2025, 1, 1),
        )
        fields.update(kwargs)
        employee = Employee(employee_id=employee_id, **fields)
        self.employees[employee_id] = employee
        return employee

    def grant(self, actor_id: str, *codes, scope: GrantScope = GrantScope.COMPANY, division_id: Optional[str] = None):
        for code in codes:
            code = code.value if isinstance(code, Permission) else code
            self.grants.setdefault(actor_id, []).append((code, scope, division_id))

    def put_record(self, record: AttendanceRecord) -> AttendanceRecord:
        self.records[record.record_id] = record
        return record

    def find(self, employee_id: str, attendance_date: date, *, snapshot: bool = False) -> Optional[AttendanceRecord]:
        for r in self.records.values():
            if snapshot and r.record_id in self.concurrent_ids:
                continue
            if r.employee_id == employee_id and r.attendance_date == attendance_date:
                return r
        return None

    def put_concurrent(self, record: AttendanceRecord) -> AttendanceRecord:
        """Simulate another transaction committing `record` while ours is open."""
        self.concurrent_ids.add(record.record_id)
        return self.put_record(record)

    @contextmanager
    def transaction(self):
        records = copy.deepcopy(self.records)
        audit = list(self.audit)
        try:
            yield AttendanceTransaction(
                store=InMemoryStore(self),
                audit=InMemoryAuditLog(self),
                access=AccessService(InMemoryGrants(self)),
            )
        except Exception:
            committed_elsewhere = {i: self.records[i] for i in self.concurrent_ids if i in self.records}
            self.records = {**records, **committed_elsewhere}
            self.audit = audit
            self.rollbacks += 1
            raise
        finally:
            self.concurrent_ids.clear()
        self.commits += 1


class InMemoryStore:
    def __init__(self, db: InMemoryDatabase):
        self._db = db

    def today(self) -> date:
        return self._db.today

    def get_employee(self, employee_id):
        return self._db.employees.get(employee_id)

    def get_record(self, employee_id, attendance_date, *, locking=False):
        if locking:
            self._db.locking_reads += 1
        return self._db.find(employee_id, attendance_date, snapshot=not locking)

    def get_record_by_id(self, record_id):
        return self._db.records.get(record_id)

    def insert_record(self, row: NewAttendanceRecord):
        if self._db.before_insert is not None:
            self._db.before_insert(row)
        if self._db.find(row.employee_id, row.attendance_date) is not None:
            return None
        record = AttendanceRecord(
            record_id=row.record_id,
            employee_id=row.employee_id,
            attendance_date=row.attendance_date,
            status=row.status,
            source=row.source,
            note=row.note,
            marked_by=row.marked_by,
            marked_at=NOW,
            created_at=NOW,
            updated_at=NOW,
            version=row.version,
        )
        return self._db.put_record(record)

    def update_record(self, record_id, *, status, source, note, marked_by, expected_version=None):
        current = self._db.records[record_id]
        if expected_version is not None and current.version != expected_version:
            return None
        updated = replace(
            current,
            status=status,
            source=source,
            note=note,
            marked_by=marked_by,
            marked_at=NOW,
            updated_at=NOW,
            version=current.version + 1,
        )
        return self._db.put_record(updated)

    def list_records(self, *, start_date, end_date, division_id=None):
        out = []
        for r in self._db.records.values():
            if not start_date <= r.attendance_date <= end_date:
                continue
            emp = self._db.employees.get(r.employee_id)
            if division_id is not None and (emp is None or emp.division_id != division_id):
                continue
            out.append(r)
        return sorted(out, key=lambda r: r.attendance_date)

    def list_employees(self, *, division_id=None):
        out = [
            e
            for e in self._db.employees.values()
            if e.is_active and (division_id is None or e.division_id == division_id)
        ]
        return sorted(out, key=lambda e: e.employee_code)

    def get_month_close_status(self, month_end):
        return self._db.month_close.get(month_end, MonthCloseStatus.OPEN)


class InMemoryAuditLog:
    def __init__(self, db: InMemoryDatabase):
        self._db = db

    def append(self, entry: AuditLogEntry) -> str:
        if self._db.fail_audit_on is not None and self._db.fail_audit_on(entry):
            raise AuditWriteError("Audit logging failed")
        self._db.audit.append(entry)
        return f"audit-{len(self._db.audit)}"


class InMemoryGrants:
    def __init__(self, db: InMemoryDatabase):
        self._db = db

    def has_scoped_grant(self, *, actor_id, permission_code, employee_id):
        emp = self._db.employees.get(employee_id)
        division_id = emp.division_id if emp else None
        for code, scope, grant_division in self._db.grants.get(actor_id, []):
            if code != permission_code:
                continue
            if scope == GrantScope.COMPANY:
                return True
            if scope == GrantScope.DIVISION and division_id is not None and grant_division == division_id:
                return True
        return False


class InMemoryConfig:
    def __init__(self, db: InMemoryDatabase):
        self._db = db

    def get_value(self, key):
        return self._db.config.get(key)


def make_record(employee_id: str, **kwargs) -> AttendanceRecord:
    fields = dict(
        record_id=f"rec-{employee_id}",
        employee_id=employee_id,
        attendance_date=TODAY,
        status=AttendanceStatus.PRESENT,
        source=AttendanceSource.HR,
        note=None,
        marked_by="hr-1",
        marked_at=NOW,
        created_at=NOW,
        updated_at=NOW,
        version=1,
    )
    fields.update(kwargs)
    return AttendanceRecord(**fields)


@pytest.fixture
def db() -> InMemoryDatabase:
    db = InMemoryDatabase()
    db.add_employee("emp-1")
    db.add_employee("emp-2")
    db.add_employee("emp-3")
    db.grant("hr-1", *HR_OVERRIDE_PERMISSIONS)
    return db


@pytest.fixture
def flags(db) -> FeatureFlags:
    return FeatureFlags(InMemoryConfig(db))


@pytest.fixture
def service(db, flags) -> AttendanceService:
    ids = itertools.count(1)
    return AttendanceService(db.transaction, flags, id_factory=lambda: f"rec-new-{next(ids)}")


@pytest.fixture
def enable_self_mark(db):
    db.config[SELF_MARK_ENABLED_KEY] = "true"


@pytest.fixture
def enforce_month_close(db):
    db.config[MONTH_CLOSE_ENABLED_KEY] = "1"
