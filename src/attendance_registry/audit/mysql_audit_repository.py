from __future__ import annotations

import json
import logging
import uuid

import mysql.connector

from ..core.exceptions import AuditWriteError
from .model import AuditLogEntry
from .repository import AuditLogRepository

logger = logging.getLogger(__name__)


def _dump(data):
    if data is None:
        return None
    return json.dumps(data, default=str, sort_keys=True)


class MySQLAuditLogRepository(AuditLogRepository):
    """Writes audit rows through the cursor of the surrounding transaction."""

    def __init__(self, cur):
        self._cur = cur

    def append(self, entry: AuditLogEntry) -> str:
        audit_id = str(uuid.uuid4())
        try:
            self._cur.execute(
                """
                INSERT INTO audit_log(
                    id, request_id, entity_type, entity_id, action,
                    before_data, after_data, actor_id, reason, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,NOW())
                """,
                (
                    audit_id,
                    entry.request_id,
                    entry.entity_type,
                    entry.entity_id,
                    entry.action.value,
                    _dump(entry.before_data),
                    _dump(entry.after_data),
                    entry.actor_id,
                    entry.reason,
                ),
            )
        except mysql.connector.Error as exc:
            logger.error("audit append failed action=%s entity=%s: %s", entry.action.value, entry.entity_id, exc)
            raise AuditWriteError("Audit logging failed") from exc
        return audit_id
