from __future__ import annotations

import logging
from typing import Iterable, Optional, Union

from ..core.enums import Permission
from ..core.exceptions import AuthorizationError
from .repository import PermissionGrantRepository

logger = logging.getLogger(__name__)

PermissionCode = Union[Permission, str]


def _code(value: PermissionCode) -> str:
    return value.value if isinstance(value, Permission) else str(value)


def has_permission(actor_permissions: Optional[Iterable[PermissionCode]], code: PermissionCode) -> bool:
    """Coarse check against the actor's flattened permission list.

    SYSTEM_FULL_ACCESS satisfies every code.
    """
    permissions = {_code(p) for p in (actor_permissions or [])}
    if Permission.SYSTEM_FULL_ACCESS.value in permissions:
        return True
    return _code(code) in permissions


def require_permission(actor_permissions: Optional[Iterable[PermissionCode]], code: PermissionCode) -> None:
    if not has_permission(actor_permissions, code):
        logger.warning("permission denied code=%s", _code(code))
        raise AuthorizationError()


class AccessService:
    """Use case: organizational-scope authorization for one employee."""

    def __init__(self, grants: PermissionGrantRepository):
        self._grants = grants

    def assert_scoped_access(self, *, actor_id: str, permission_code: PermissionCode, employee_id: str) -> None:
        code = _code(permission_code)
        if not self._grants.has_scoped_grant(actor_id=str(actor_id), permission_code=code, employee_id=str(employee_id)):
            logger.warning("scoped access denied actor=%s code=%s employee=%s", actor_id, code, employee_id)
            raise AuthorizationError()
