"""Trusted write path used by the leave workflow.

Leave approval forces attendance to LEAVE (and cancellation reverts it) without
going through the attendance permission, date or month-close checks. The leave
workflow owns the transaction and hands it in.

Writes are tagged in ``note`` with the leave request id so a later revert only
touches records this path produced.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Callable, Optional

from ..attendance.model import AttendanceRecord, NewAttendanceRecord
from ..attendance.policy import normalize_attendance_date
from ..attendance.transaction import AttendanceTransaction
from ..audit.model import AuditLogEntry
from ..core.constants import LEAVE_NOTE_PREFIX, REVERTED_LEAVE_NOTE_PREFIX
from ..core.enums import AttendanceSource, AttendanceStatus, AuditAction
from ..core.exceptions import ConflictError

logger = logging.getLogger(__name__)


def make_leave_note(leave_request_id: str, half_day_part: Optional[str] = None) -> str:
    base = f"{LEAVE_NOTE_PREFIX}:{leave_request_id}"
    if half_day_part:
        return f"{base}:{str(half_day_part).strip().upper()}"
    return base


def is_tagged_for(note: Optional[str], leave_request_id: str) -> bool:
    """True when ``note`` is LEAVE_REQUEST:<id> or LEAVE_REQUEST:<id>:<part>."""
    tag = make_leave_note(leave_request_id)
    s = str(note or "")
    return s == tag or s.startswith(tag + ":")


class LeaveAttendanceSync:
    def __init__(self, *, id_factory: Optional[Callable[[], str]] = None):
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))

    def apply_leave_to_attendance(
        self,
        tx: AttendanceTransaction,
        *,
        employee_id: str,
        attendance_date,
        leave_request_id: str,
        actor_id: str,
        half_day_part: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> AttendanceRecord:
        day: date = normalize_attendance_date(attendance_date)
        note = make_leave_note(leave_request_id, half_day_part)
        existing = tx.store.get_record(employee_id, day)

        if existing is None:
            record = tx.store.insert_record(
                NewAttendanceRecord(
                    record_id=self._new_id(),
                    employee_id=employee_id,
                    attendance_date=day,
                    status=AttendanceStatus.LEAVE,
                    source=AttendanceSource.SYSTEM,
                    note=note,
                    marked_by=actor_id,
                    version=1,
                )
            )
            if record is None:
                raise ConflictError("Attendance already exists")
            before = None
        else:
            record = tx.store.update_record(
                existing.record_id,
                status=AttendanceStatus.LEAVE,
                source=AttendanceSource.SYSTEM,
                note=note,
                marked_by=actor_id,
            )
            before = existing.snapshot()

        tx.audit.append(
            AuditLogEntry(
                entity_id=record.record_id,
                action=AuditAction.ATTENDANCE_SYNC_APPLIED,
                before_data=before,
                after_data=record.snapshot(),
                actor_id=actor_id,
                request_id=request_id,
            )
        )
        logger.info("leave %s applied to attendance record=%s date=%s", leave_request_id, record.record_id, day)
        return record

    def revert_leave_in_attendance(
        self,
        tx: AttendanceTransaction,
        *,
        employee_id: str,
        attendance_date,
        leave_request_id: str,
        actor_id: str,
        request_id: Optional[str] = None,
    ) -> Optional[AttendanceRecord]:
        """Flip a leave-synced record back to ABSENT; None when this leave does not own it."""
        day: date = normalize_attendance_date(attendance_date)
        existing = tx.store.get_record(employee_id, day)
        if existing is None:
            return None
        if existing.source != AttendanceSource.SYSTEM or not is_tagged_for(existing.note, leave_request_id):
            logger.info("leave %s revert skipped: record=%s not owned", leave_request_id, existing.record_id)
            return None

        updated = tx.store.update_record(
            existing.record_id,
            status=AttendanceStatus.ABSENT,
            source=AttendanceSource.SYSTEM,
            note=f"{REVERTED_LEAVE_NOTE_PREFIX}:{leave_request_id}",
            marked_by=actor_id,
        )
        tx.audit.append(
            AuditLogEntry(
                entity_id=updated.record_id,
                action=AuditAction.ATTENDANCE_SYNC_REVERTED,
                before_data=existing.snapshot(),
                after_data=updated.snapshot(),
                actor_id=actor_id,
                request_id=request_id,
            )
        )
        logger.info("leave %s reverted in attendance record=%s", leave_request_id, updated.record_id)
        return updated
