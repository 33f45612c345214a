from __future__ import annotations

from datetime import date
from typing import Callable, Optional, Sequence

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..core.enums import AttendanceSource, AttendanceStatus, EmployeeStatus, MonthCloseStatus
from ..database.mysql_base import fetchall, fetchone, normalize_mysql_date
from ..employees.model import Employee
from .model import AttendanceRecord, NewAttendanceRecord
from .repository import AttendanceStore

_RECORD_COLUMNS = """
    ar.id, ar.employee_id, ar.attendance_date, ar.status, ar.source, ar.note,
    ar.marked_by, ar.marked_at, ar.created_at, ar.updated_at, ar.version
"""

_EMPLOYEE_COLUMNS = """
    e.id, e.employee_code, e.first_name, e.last_name, e.status,
    e.primary_division_id, e.joining_date, DATE(e.created_at) AS created_at_date
"""


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=str(r["id"]),
        employee_id=str(r["employee_id"]),
        attendance_date=normalize_mysql_date(r["attendance_date"]),
        status=AttendanceStatus(r["status"]),
        source=AttendanceSource(r["source"]),
        note=r.get("note"),
        marked_by=str(r["marked_by"]),
        marked_at=r["marked_at"],
        created_at=r["created_at"],
        updated_at=r["updated_at"],
        version=int(r["version"]),
    )


def _to_employee(r: dict) -> Employee:
    return Employee(
        employee_id=str(r["id"]),
        employee_code=r.get("employee_code") or "",
        first_name=r.get("first_name") or "",
        last_name=r.get("last_name") or "",
        status=r["status"],
        division_id=r.get("primary_division_id"),
        joining_date=normalize_mysql_date(r.get("joining_date")),
        created_at_date=normalize_mysql_date(r.get("created_at_date")),
    )


class MySQLAttendanceStore(AttendanceStore):
    """AttendanceStore over the cursor of one open transaction.

    ``clock`` pins "today" (tests, replays); without it the database date is used.
    """

    def __init__(self, cur, *, clock: Optional[Callable[[], date]] = None):
        self._cur = cur
        self._clock = clock

    def today(self) -> date:
        if self._clock is not None:
            return self._clock()
        self._cur.execute("SELECT CURRENT_DATE AS today_date")
        row = fetchone(self._cur)
        return normalize_mysql_date(row["today_date"])

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        self._cur.execute(
            f"""
            SELECT {_EMPLOYEE_COLUMNS}
            FROM employee e
            WHERE e.id=%s
            """,
            (employee_id,),
        )
        r = fetchone(self._cur)
        return _to_employee(r) if r else None

    def get_record(
        self, employee_id: str, attendance_date: date, *, locking: bool = False
    ) -> Optional[AttendanceRecord]:
        # Under REPEATABLE READ only a locking read sees rows committed after the snapshot.
        lock = " LOCK IN SHARE MODE" if locking else ""
        self._cur.execute(
            f"""
            SELECT {_RECORD_COLUMNS}
            FROM attendance_record ar
            WHERE ar.employee_id=%s AND ar.attendance_date=%s{lock}
            """,
            (employee_id, attendance_date),
        )
        r = fetchone(self._cur)
        return _to_record(r) if r else None

    def get_record_by_id(self, record_id: str) -> Optional[AttendanceRecord]:
        self._cur.execute(
            f"""
            SELECT {_RECORD_COLUMNS}
            FROM attendance_record ar
            WHERE ar.id=%s
            """,
            (record_id,),
        )
        r = fetchone(self._cur)
        return _to_record(r) if r else None

    def insert_record(self, row: NewAttendanceRecord) -> Optional[AttendanceRecord]:
        try:
            self._cur.execute(
                """
                INSERT INTO attendance_record(
                    id, employee_id, attendance_date, status, source, note,
                    marked_by, marked_at, created_at, updated_at, version
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,NOW(),NOW(),NOW(),%s)
                """,
                (
                    row.record_id,
                    row.employee_id,
                    row.attendance_date,
                    row.status.value,
                    row.source.value,
                    row.note,
                    row.marked_by,
                    int(row.version),
                ),
            )
        except IntegrityError as exc:
            # uq_attendance_employee_date: a concurrent writer got there first
            if exc.errno == errorcode.ER_DUP_ENTRY:
                return None
            raise
        return self.get_record_by_id(row.record_id)

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
        sql = """
            UPDATE attendance_record
            SET status=%s, source=%s, note=%s, marked_by=%s,
                marked_at=NOW(), updated_at=NOW(), version=version + 1
            WHERE id=%s
        """
        params: list[object] = [status.value, source.value, note, marked_by, record_id]
        if expected_version is not None:
            sql += " AND version=%s"
            params.append(int(expected_version))

        self._cur.execute(sql, tuple(params))
        if expected_version is not None and self._cur.rowcount == 0:
            return None
        return self.get_record_by_id(record_id)

    def list_records(
        self,
        *,
        start_date: date,
        end_date: date,
        division_id: Optional[str] = None,
    ) -> Sequence[AttendanceRecord]:
        clauses = ["ar.attendance_date BETWEEN %s AND %s"]
        params: list[object] = [start_date, end_date]
        if division_id is not None:
            clauses.append("e.primary_division_id=%s")
            params.append(division_id)

        where = " AND ".join(clauses)
        self._cur.execute(
            f"""
            SELECT {_RECORD_COLUMNS}
            FROM attendance_record ar
            JOIN employee e ON e.id = ar.employee_id
            WHERE {where}
            ORDER BY ar.attendance_date ASC
            """,
            tuple(params),
        )
        return [_to_record(r) for r in fetchall(self._cur)]

    def list_employees(self, *, division_id: Optional[str] = None) -> Sequence[Employee]:
        clauses = ["e.status=%s"]
        params: list[object] = [EmployeeStatus.ACTIVE.value]
        if division_id is not None:
            clauses.append("e.primary_division_id=%s")
            params.append(division_id)

        where = " AND ".join(clauses)
        self._cur.execute(
            f"""
            SELECT {_EMPLOYEE_COLUMNS}
            FROM employee e
            WHERE {where}
            ORDER BY e.employee_code ASC
            """,
            tuple(params),
        )
        return [_to_employee(r) for r in fetchall(self._cur)]

    def get_month_close_status(self, month_end: date) -> MonthCloseStatus:
        self._cur.execute(
            """
            SELECT status
            FROM month_close
            WHERE scope='COMPANY' AND month=%s
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """,
            (month_end,),
        )
        r = fetchone(self._cur)
        if not r:
            return MonthCloseStatus.OPEN
        return MonthCloseStatus(r["status"])
