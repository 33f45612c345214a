from __future__ import annotations

from dataclasses import dataclass

from .attendance.service import AttendanceService
from .attendance.transaction import MySQLTransactionFactory, TransactionFactory
from .database.connection import DBConfig, DatabaseConnection
from .leave_sync.adapter import LeaveAttendanceSync
from .settings.mysql_system_config_repository import MySQLSystemConfigRepository
from .settings.service import FeatureFlags


@dataclass(frozen=True)
class Container:
    transactions: TransactionFactory
    feature_flags: FeatureFlags

    attendance_service: AttendanceService
    leave_sync: LeaveAttendanceSync


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    transactions = MySQLTransactionFactory(conn)
    feature_flags = FeatureFlags(MySQLSystemConfigRepository(conn))

    return Container(
        transactions=transactions,
        feature_flags=feature_flags,
        attendance_service=AttendanceService(transactions, feature_flags),
        leave_sync=LeaveAttendanceSync(),
    )
