from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Callable, Iterable, List, Optional, Sequence, Union

from ..access.service import has_permission, require_permission
from ..audit.model import AuditLogEntry
from ..common.datetime_utils import count_working_days, month_bounds
from ..common.validators import optional_trimmed, require_max_length, require_non_empty
from ..core.constants import (
    ACTOR_ID_MAX_LENGTH,
    BULK_MAX_ITEMS,
    NOTE_MAX_LENGTH,
    REASON_MAX_LENGTH,
    REQUEST_ID_MAX_LENGTH,
)
from ..core.enums import (
    AttendanceSource,
    AttendanceStatus,
    AuditAction,
    BulkOutcome,
    MonthCloseStatus,
    Permission,
)
from ..core.exceptions import ConflictError, DomainError, MonthClosedError, ValidationError
from ..settings.service import FeatureFlags
from .model import (
    Absent,
    AttendanceRecord,
    AttendanceSummary,
    BulkItemResult,
    BulkMarkItem,
    BulkMarkResult,
    MarkResult,
    MonthAttendance,
    NewAttendanceRecord,
    Present,
    SummaryRow,
)
from .policy import (
    assert_attendance_date_allowed,
    assert_employee_active,
    assert_self_marking_allowed,
    assert_within_employment_period,
    month_end_for,
    normalize_attendance_date,
    normalize_source,
    normalize_status,
)
from .repository import lookup_record
from .transaction import AttendanceTransaction, TransactionFactory

logger = logging.getLogger(__name__)

OVERRIDE_REQUIRED = "Attendance record already exists; override required"


class AttendanceService:
    """Use case: write and read daily attendance.

    Every entry point runs in exactly one transaction obtained from ``transactions``;
    the audit entry is written through the same transaction as the record change.
    """

    def __init__(
        self,
        transactions: TransactionFactory,
        flags: FeatureFlags,
        *,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._transactions = transactions
        self._flags = flags
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))

    # ------------------------------------------------------------------ writes

    def mark(
        self,
        *,
        employee_id: str,
        attendance_date,
        status,
        source,
        actor_id: str,
        actor_permissions: Iterable[str],
        note: Optional[str] = None,
        reason: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> MarkResult:
        actor_permissions = list(actor_permissions or [])
        logger.info(
            "attendance.mark employee=%s date=%s status=%s source=%s actor=%s request=%s",
            employee_id, attendance_date, status, source, actor_id, request_id,
        )
        try:
            require_permission(actor_permissions, Permission.ATTENDANCE_WRITE)
            self._assert_caller_ids(actor_id, request_id)
            status_ = normalize_status(status)
            source_ = normalize_source(source)
            day = normalize_attendance_date(attendance_date)
            assert_self_marking_allowed(
                actor_id=actor_id,
                employee_id=employee_id,
                source=source_,
                self_mark_enabled=self._flags.is_self_mark_enabled(),
            )
            note = optional_trimmed(note, "Note", max_len=NOTE_MAX_LENGTH)

            with self._transactions() as tx:
                self._assert_today(tx, day)
                self._assert_employee_writable(
                    tx, employee_id=employee_id, day=day, actor_id=actor_id, permission=Permission.ATTENDANCE_WRITE
                )
                month_status = self._assert_month_open(tx, day)

                lookup = lookup_record(tx.store, employee_id, day)
                if isinstance(lookup, Present):
                    record = self._override_existing(
                        tx,
                        existing=lookup.record,
                        status=status_,
                        source=source_,
                        note=note,
                        reason=reason,
                        actor_id=actor_id,
                        actor_permissions=actor_permissions,
                        request_id=request_id,
                    )
                else:
                    record = self._create(
                        tx,
                        employee_id=employee_id,
                        day=day,
                        status=status_,
                        source=source_,
                        note=note,
                        actor_id=actor_id,
                        request_id=request_id,
                        action=AuditAction.MARK,
                    )
        except DomainError as exc:
            logger.warning("attendance.mark rejected code=%s: %s", exc.code, exc.message)
            raise

        return MarkResult(record=record, month_status=month_status)

    def override(
        self,
        *,
        employee_id: str,
        attendance_date,
        status,
        reason: Optional[str],
        actor_id: str,
        actor_permissions: Iterable[str],
        source=AttendanceSource.HR,
        note: Optional[str] = None,
        request_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> MarkResult:
        """Change an existing record. Never creates one."""
        actor_permissions = list(actor_permissions or [])
        logger.info(
            "attendance.override employee=%s date=%s status=%s actor=%s request=%s",
            employee_id, attendance_date, status, actor_id, request_id,
        )
        try:
            require_permission(actor_permissions, Permission.ATTENDANCE_OVERRIDE)
            self._assert_caller_ids(actor_id, request_id)
            status_ = normalize_status(status)
            source_ = normalize_source(source)
            day = normalize_attendance_date(attendance_date)
            reason_ = require_non_empty(reason, "Reason", max_len=REASON_MAX_LENGTH)
            assert_self_marking_allowed(
                actor_id=actor_id,
                employee_id=employee_id,
                source=source_,
                self_mark_enabled=self._flags.is_self_mark_enabled(),
            )
            note = optional_trimmed(note, "Note", max_len=NOTE_MAX_LENGTH)

            with self._transactions() as tx:
                self._assert_today(tx, day)
                self._assert_employee_writable(
                    tx, employee_id=employee_id, day=day, actor_id=actor_id, permission=Permission.ATTENDANCE_OVERRIDE
                )
                month_status = self._assert_month_open(tx, day)

                lookup = lookup_record(tx.store, employee_id, day)
                if isinstance(lookup, Absent):
                    raise ValidationError("Attendance record does not exist", code="NOT_FOUND")

                record = self._update(
                    tx,
                    existing=lookup.record,
                    status=status_,
                    source=source_,
                    note=note,
                    reason=reason_,
                    actor_id=actor_id,
                    request_id=request_id,
                    expected_version=expected_version,
                )
        except DomainError as exc:
            logger.warning("attendance.override rejected code=%s: %s", exc.code, exc.message)
            raise

        return MarkResult(record=record, month_status=month_status)

    def bulk_mark(
        self,
        *,
        attendance_date,
        source,
        items: Sequence[Union[BulkMarkItem, dict]],
        actor_id: str,
        actor_permissions: Iterable[str],
        request_id: Optional[str] = None,
    ) -> BulkMarkResult:
        """Mark many employees for one date in one transaction.

        Item-level DomainErrors become FAILED results; the other items still commit.
        Date and month-close violations fail the whole call.
        """
        actor_permissions = list(actor_permissions or [])
        logger.info(
            "attendance.bulk_mark date=%s source=%s items=%s actor=%s request=%s",
            attendance_date, source, len(items or []), actor_id, request_id,
        )
        try:
            require_permission(actor_permissions, Permission.ATTENDANCE_BULK_WRITE)
            self._assert_caller_ids(actor_id, request_id)
            source_ = normalize_source(source)
            day = normalize_attendance_date(attendance_date)
            parsed = [i if isinstance(i, BulkMarkItem) else BulkMarkItem.from_dict(i) for i in (items or [])]
            if not parsed:
                raise ValidationError("At least one item is required")
            if len(parsed) > BULK_MAX_ITEMS:
                raise ValidationError(f"At most {BULK_MAX_ITEMS} items per request")
            self_mark_enabled = self._flags.is_self_mark_enabled()

            results: List[BulkItemResult] = []
            with self._transactions() as tx:
                self._assert_today(tx, day)
                self._assert_month_open(tx, day)

                for item in parsed:
                    try:
                        results.append(
                            self._bulk_item(
                                tx,
                                item=item,
                                day=day,
                                source=source_,
                                self_mark_enabled=self_mark_enabled,
                                actor_id=actor_id,
                                actor_permissions=actor_permissions,
                                request_id=request_id,
                            )
                        )
                    except DomainError as exc:
                        logger.warning(
                            "attendance.bulk_mark item failed employee=%s code=%s: %s",
                            item.employee_id, exc.code, exc.message,
                        )
                        results.append(
                            BulkItemResult(
                                employee_id=item.employee_id,
                                attendance_date=day,
                                status=str(getattr(item.status, "value", item.status) or ""),
                                outcome=BulkOutcome.FAILED,
                                error=exc.message,
                                error_code=exc.code,
                            )
                        )
        except DomainError as exc:
            logger.warning("attendance.bulk_mark rejected code=%s: %s", exc.code, exc.message)
            raise

        return BulkMarkResult(results=results)

    # ------------------------------------------------------------------- reads

    def by_month(
        self,
        *,
        month: str,
        actor_permissions: Iterable[str],
        division_id: Optional[str] = None,
    ) -> MonthAttendance:
        require_permission(actor_permissions, Permission.ATTENDANCE_READ)
        start, end = month_bounds(month)

        with self._transactions() as tx:
            month_status = tx.store.get_month_close_status(month_end_for(start))
            employees = tx.store.list_employees(division_id=division_id)
            records = tx.store.list_records(start_date=start, end_date=end, division_id=division_id)
            today = tx.store.today()

        return MonthAttendance(
            month=start.strftime("%Y-%m"),
            start_date=start,
            end_date=end,
            month_status=month_status,
            today=today,
            employees=list(employees),
            records=list(records),
        )

    def summary(
        self,
        *,
        month: str,
        actor_permissions: Iterable[str],
        division_id: Optional[str] = None,
    ) -> AttendanceSummary:
        require_permission(actor_permissions, Permission.ATTENDANCE_READ)
        start, end = month_bounds(month)

        with self._transactions() as tx:
            month_status = tx.store.get_month_close_status(month_end_for(start))
            employees = tx.store.list_employees(division_id=division_id)
            records = tx.store.list_records(start_date=start, end_date=end, division_id=division_id)

        rows = {
            e.employee_id: SummaryRow(
                employee_id=e.employee_id,
                employee_code=e.employee_code,
                first_name=e.first_name,
                last_name=e.last_name,
                joining_date=e.employment_start,
            )
            for e in employees
        }
        for r in records:
            row = rows.get(r.employee_id)
            if row is None:
                continue
            if row.joining_date and r.attendance_date < row.joining_date:
                continue
            if r.status == AttendanceStatus.PRESENT:
                row.present_days += 1
            elif r.status == AttendanceStatus.ABSENT:
                row.absent_days += 1
            elif r.status == AttendanceStatus.LEAVE:
                row.leave_days += 1
            row.total_marked_days += 1

        return AttendanceSummary(
            month=start.strftime("%Y-%m"),
            start_date=start,
            end_date=end,
            month_status=month_status,
            working_days=count_working_days(start, end),
            rows=sorted(rows.values(), key=lambda r: str(r.employee_code)),
        )

    # ----------------------------------------------------------------- helpers

    @staticmethod
    def _assert_caller_ids(actor_id: str, request_id: Optional[str]) -> None:
        require_non_empty(actor_id, "actorId", max_len=ACTOR_ID_MAX_LENGTH)
        require_max_length(request_id, "requestId", REQUEST_ID_MAX_LENGTH)

    @staticmethod
    def _assert_today(tx: AttendanceTransaction, day: date) -> None:
        assert_attendance_date_allowed(day, tx.store.today())

    @staticmethod
    def _assert_employee_writable(
        tx: AttendanceTransaction,
        *,
        employee_id: str,
        day: date,
        actor_id: str,
        permission: Permission,
    ) -> None:
        tx.access.assert_scoped_access(actor_id=actor_id, permission_code=permission, employee_id=employee_id)
        employee = assert_employee_active(tx.store.get_employee(employee_id))
        assert_within_employment_period(employee, day)

    def _assert_month_open(self, tx: AttendanceTransaction, day: date) -> MonthCloseStatus:
        if not self._flags.is_month_close_enforced():
            return MonthCloseStatus.OPEN

        status = tx.store.get_month_close_status(month_end_for(day))
        if status == MonthCloseStatus.CLOSED:
            raise MonthClosedError()
        return status

    def _bulk_item(
        self,
        tx: AttendanceTransaction,
        *,
        item: BulkMarkItem,
        day: date,
        source: AttendanceSource,
        self_mark_enabled: bool,
        actor_id: str,
        actor_permissions: Sequence[str],
        request_id: Optional[str],
    ) -> BulkItemResult:
        status = normalize_status(item.status)
        assert_self_marking_allowed(
            actor_id=actor_id,
            employee_id=item.employee_id,
            source=source,
            self_mark_enabled=self_mark_enabled,
        )
        self._assert_employee_writable(
            tx, employee_id=item.employee_id, day=day, actor_id=actor_id, permission=Permission.ATTENDANCE_BULK_WRITE
        )
        note = optional_trimmed(item.note, "Note", max_len=NOTE_MAX_LENGTH)

        lookup = lookup_record(tx.store, item.employee_id, day)
        if isinstance(lookup, Present):
            self._override_existing(
                tx,
                existing=lookup.record,
                status=status,
                source=source,
                note=note,
                reason=item.reason,
                actor_id=actor_id,
                actor_permissions=actor_permissions,
                request_id=request_id,
            )
            outcome = BulkOutcome.UPDATED
        else:
            self._create(
                tx,
                employee_id=item.employee_id,
                day=day,
                status=status,
                source=source,
                note=note,
                actor_id=actor_id,
                request_id=request_id,
                action=AuditAction.BULK_MARK,
            )
            outcome = BulkOutcome.CREATED

        return BulkItemResult(employee_id=item.employee_id, attendance_date=day, status=status.value, outcome=outcome)

    def _create(
        self,
        tx: AttendanceTransaction,
        *,
        employee_id: str,
        day: date,
        status: AttendanceStatus,
        source: AttendanceSource,
        note: Optional[str],
        actor_id: str,
        request_id: Optional[str],
        action: AuditAction,
    ) -> AttendanceRecord:
        inserted = tx.store.insert_record(
            NewAttendanceRecord(
                record_id=self._new_id(),
                employee_id=employee_id,
                attendance_date=day,
                status=status,
                source=source,
                note=note,
                marked_by=actor_id,
                version=1,
            )
        )
        if inserted is None:
            # Lost the race on the unique key.
            if tx.store.get_record(employee_id, day, locking=True) is not None:
                raise ConflictError(OVERRIDE_REQUIRED)
            raise ValidationError("Failed to mark attendance")

        tx.audit.append(
            AuditLogEntry(
                entity_id=inserted.record_id,
                action=action,
                before_data=None,
                after_data=inserted.snapshot(),
                actor_id=actor_id,
                request_id=request_id,
            )
        )
        logger.info("attendance %s record=%s employee=%s", action.value, inserted.record_id, employee_id)
        return inserted

    def _override_existing(
        self,
        tx: AttendanceTransaction,
        *,
        existing: AttendanceRecord,
        status: AttendanceStatus,
        source: AttendanceSource,
        note: Optional[str],
        reason: Optional[str],
        actor_id: str,
        actor_permissions: Iterable[str],
        request_id: Optional[str],
    ) -> AttendanceRecord:
        if not has_permission(actor_permissions, Permission.ATTENDANCE_OVERRIDE):
            raise ConflictError(OVERRIDE_REQUIRED)

        reason_ = require_non_empty(reason, "Reason", max_len=REASON_MAX_LENGTH)
        tx.access.assert_scoped_access(
            actor_id=actor_id, permission_code=Permission.ATTENDANCE_OVERRIDE, employee_id=existing.employee_id
        )
        return self._update(
            tx,
            existing=existing,
            status=status,
            source=source,
            note=note,
            reason=reason_,
            actor_id=actor_id,
            request_id=request_id,
        )

    def _update(
        self,
        tx: AttendanceTransaction,
        *,
        existing: AttendanceRecord,
        status: AttendanceStatus,
        source: AttendanceSource,
        note: Optional[str],
        reason: str,
        actor_id: str,
        request_id: Optional[str],
        expected_version: Optional[int] = None,
    ) -> AttendanceRecord:
        if expected_version is not None and int(expected_version) != existing.version:
            raise ConflictError("Attendance record was changed by someone else; reload and retry")

        updated = tx.store.update_record(
            existing.record_id,
            status=status,
            source=source,
            note=note,
            marked_by=actor_id,
            expected_version=expected_version,
        )
        if updated is None:
            raise ConflictError("Attendance record was changed by someone else; reload and retry")

        tx.audit.append(
            AuditLogEntry(
                entity_id=updated.record_id,
                action=AuditAction.OVERRIDE,
                before_data=existing.snapshot(),
                after_data=updated.snapshot(),
                actor_id=actor_id,
                reason=reason,
                request_id=request_id,
            )
        )
        logger.info(
            "attendance OVERRIDE record=%s version=%s->%s", updated.record_id, existing.version, updated.version
        )
        return updated
