from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .repository import SystemConfigRepository


class MySQLSystemConfigRepository(SystemConfigRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_value(self, key: str) -> Optional[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT value FROM system_config WHERE `key`=%s", (key,))
            row = fetchone(cur)
            if not row:
                return None
            return row.get("value")
