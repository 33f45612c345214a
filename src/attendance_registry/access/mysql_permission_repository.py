from __future__ import annotations

from ..core.enums import GrantScope
from ..database.mysql_base import fetchone
from .repository import PermissionGrantRepository


class MySQLPermissionGrantRepository(PermissionGrantRepository):
    def __init__(self, cur):
        self._cur = cur

    def has_scoped_grant(self, *, actor_id: str, permission_code: str, employee_id: str) -> bool:
        self._cur.execute("SELECT primary_division_id FROM employee WHERE id=%s", (employee_id,))
        emp = fetchone(self._cur)
        division_id = emp.get("primary_division_id") if emp else None

        self._cur.execute(
            """
            SELECT 1 AS ok
            FROM user_role ur
            JOIN role_permission rp ON rp.role_id = ur.role_id
            JOIN permission p ON p.id = rp.permission_id
            WHERE ur.user_id=%s
              AND p.code=%s
              AND (
                ur.scope=%s
                OR (ur.scope=%s AND %s IS NOT NULL AND ur.division_id=%s)
              )
            LIMIT 1
            """,
            (
                actor_id,
                permission_code,
                GrantScope.COMPANY.value,
                GrantScope.DIVISION.value,
                division_id,
                division_id,
            ),
        )
        return fetchone(self._cur) is not None
