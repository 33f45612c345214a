from __future__ import annotations

from typing import Protocol


class PermissionGrantRepository(Protocol):
    """Read-only view over role/permission grants."""

    def has_scoped_grant(self, *, actor_id: str, permission_code: str, employee_id: str) -> bool:
        """True when the actor holds the code company-wide or for the employee's division."""

        raise NotImplementedError
