from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Callable, ContextManager, Iterator, Optional, Protocol

from ..access.mysql_permission_repository import MySQLPermissionGrantRepository
from ..access.service import AccessService
from ..audit.mysql_audit_repository import MySQLAuditLogRepository
from ..audit.repository import AuditLogRepository
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from .mysql_attendance_repository import MySQLAttendanceStore
from .repository import AttendanceStore


@dataclass(frozen=True)
class AttendanceTransaction:
    """Collaborators bound to one database transaction.

    Everything written through ``store`` and ``audit`` commits or rolls back together.
    """

    store: AttendanceStore
    audit: AuditLogRepository
    access: AccessService


class TransactionFactory(Protocol):
    def __call__(self) -> ContextManager[AttendanceTransaction]:
        raise NotImplementedError


class MySQLTransactionFactory:
    def __init__(self, conn_factory: DatabaseConnection, *, clock: Optional[Callable[[], date]] = None):
        self._conn_factory = conn_factory
        self._clock = clock

    @contextmanager
    def __call__(self) -> Iterator[AttendanceTransaction]:
        with db_cursor(self._conn_factory) as (_, cur):
            yield AttendanceTransaction(
                store=MySQLAttendanceStore(cur, clock=self._clock),
                audit=MySQLAuditLogRepository(cur),
                access=AccessService(MySQLPermissionGrantRepository(cur)),
            )
