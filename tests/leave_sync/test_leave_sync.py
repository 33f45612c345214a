from __future__ import annotations

from datetime import date

import pytest

from conftest import make_record
from attendance_registry.core.enums import AttendanceSource, AttendanceStatus, AuditAction, MonthCloseStatus
from attendance_registry.core.exceptions import ConflictError
from attendance_registry.leave_sync.adapter import LeaveAttendanceSync, is_tagged_for, make_leave_note

PAST_DAY = date(2026, 2, 3)


@pytest.fixture
def sync():
    return LeaveAttendanceSync(id_factory=lambda: "rec-leave")


def test_make_leave_note():
    assert make_leave_note("123") == "LEAVE_REQUEST:123"
    assert make_leave_note("123", " am ") == "LEAVE_REQUEST:123:AM"


@pytest.mark.parametrize(
    "note, expected",
    [
        ("LEAVE_REQUEST:123", True),
        ("LEAVE_REQUEST:123:PM", True),
        ("LEAVE_REQUEST:1234", False),
        ("LEAVE_REQUEST:12", False),
        ("REVERTED_LEAVE_REQUEST:123", False),
        (None, False),
    ],
)
def test_is_tagged_for_matches_exact_request_id(note, expected):
    assert is_tagged_for(note, "123") is expected


def test_apply_inserts_leave_record_bypassing_write_checks(sync, db):
    db.month_close[date(2026, 2, 28)] = MonthCloseStatus.CLOSED

    with db.transaction() as tx:
        record = sync.apply_leave_to_attendance(
            tx, employee_id="emp-1", attendance_date=PAST_DAY, leave_request_id="123", actor_id="mgr-1",
        )

    assert record.record_id == "rec-leave"
    assert (record.status, record.source, record.note) == (
        AttendanceStatus.LEAVE,
        AttendanceSource.SYSTEM,
        "LEAVE_REQUEST:123",
    )
    assert record.version == 1
    entry = db.audit[-1]
    assert entry.action == AuditAction.ATTENDANCE_SYNC_APPLIED
    assert entry.before_data is None
    assert entry.actor_id == "mgr-1"


def test_apply_overwrites_existing_record(sync, db):
    db.put_record(make_record("emp-1", attendance_date=PAST_DAY, status=AttendanceStatus.ABSENT))

    with db.transaction() as tx:
        record = sync.apply_leave_to_attendance(
            tx, employee_id="emp-1", attendance_date="2026-02-03", leave_request_id="77",
            actor_id="mgr-1", half_day_part="pm",
        )

    assert record.status == AttendanceStatus.LEAVE
    assert record.note == "LEAVE_REQUEST:77:PM"
    assert record.version == 2
    assert db.audit[-1].before_data["status"] == "ABSENT"


def test_apply_lost_insert_race_conflicts(sync, db):
    db.before_insert = lambda row: db.put_record(make_record(row.employee_id, attendance_date=row.attendance_date))

    with pytest.raises(ConflictError):
        with db.transaction() as tx:
            sync.apply_leave_to_attendance(
                tx, employee_id="emp-1", attendance_date=PAST_DAY, leave_request_id="1", actor_id="mgr-1",
            )
    assert db.audit == []


def test_revert_restores_absent_for_owned_record(sync, db):
    db.put_record(
        make_record(
            "emp-1",
            attendance_date=PAST_DAY,
            status=AttendanceStatus.LEAVE,
            source=AttendanceSource.SYSTEM,
            note="LEAVE_REQUEST:123:AM",
        )
    )

    with db.transaction() as tx:
        record = sync.revert_leave_in_attendance(
            tx, employee_id="emp-1", attendance_date=PAST_DAY, leave_request_id="123", actor_id="mgr-1",
        )

    assert record.status == AttendanceStatus.ABSENT
    assert record.source == AttendanceSource.SYSTEM
    assert record.note == "REVERTED_LEAVE_REQUEST:123"
    assert db.audit[-1].action == AuditAction.ATTENDANCE_SYNC_REVERTED


@pytest.mark.parametrize(
    "source, note",
    [
        (AttendanceSource.SYSTEM, "LEAVE_REQUEST:1234"),
        (AttendanceSource.SYSTEM, "LEAVE_REQUEST:12"),
        (AttendanceSource.HR, "LEAVE_REQUEST:123"),
    ],
)
def test_revert_leaves_foreign_records_alone(sync, db, source, note):
    db.put_record(
        make_record("emp-1", attendance_date=PAST_DAY, status=AttendanceStatus.LEAVE, source=source, note=note)
    )

    with db.transaction() as tx:
        result = sync.revert_leave_in_attendance(
            tx, employee_id="emp-1", attendance_date=PAST_DAY, leave_request_id="123", actor_id="mgr-1",
        )

    assert result is None
    assert db.find("emp-1", PAST_DAY).status == AttendanceStatus.LEAVE
    assert db.audit == []


def test_revert_without_record_is_noop(sync, db):
    with db.transaction() as tx:
        assert sync.revert_leave_in_attendance(
            tx, employee_id="emp-1", attendance_date=PAST_DAY, leave_request_id="123", actor_id="mgr-1",
        ) is None
