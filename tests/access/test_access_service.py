from __future__ import annotations

import pytest

from conftest import DIV_SALES, InMemoryGrants
from attendance_registry.access.service import AccessService, has_permission, require_permission
from attendance_registry.core.enums import GrantScope, Permission
from attendance_registry.core.exceptions import AuthorizationError


def test_has_permission_accepts_enum_and_string_codes():
    assert has_permission(["ATTENDANCE_READ"], Permission.ATTENDANCE_READ)
    assert has_permission([Permission.ATTENDANCE_READ], "ATTENDANCE_READ")
    assert not has_permission(["ATTENDANCE_READ"], Permission.ATTENDANCE_WRITE)
    assert not has_permission(None, Permission.ATTENDANCE_READ)


def test_system_full_access_satisfies_every_code():
    for code in Permission:
        assert has_permission([Permission.SYSTEM_FULL_ACCESS.value], code)


def test_require_permission_raises_forbidden():
    with pytest.raises(AuthorizationError) as exc:
        require_permission([], Permission.ATTENDANCE_OVERRIDE)
    assert exc.value.code == "FORBIDDEN"


def test_scoped_access_company_and_division(db):
    db.add_employee("emp-sales", division_id=DIV_SALES)
    db.grant("lead-1", Permission.ATTENDANCE_WRITE, scope=GrantScope.DIVISION, division_id=DIV_SALES)
    access = AccessService(InMemoryGrants(db))

    access.assert_scoped_access(actor_id="hr-1", permission_code="ATTENDANCE_WRITE", employee_id="emp-sales")
    access.assert_scoped_access(
        actor_id="lead-1", permission_code=Permission.ATTENDANCE_WRITE, employee_id="emp-sales"
    )

    with pytest.raises(AuthorizationError):
        access.assert_scoped_access(actor_id="lead-1", permission_code="ATTENDANCE_WRITE", employee_id="emp-1")
    with pytest.raises(AuthorizationError):
        access.assert_scoped_access(actor_id="lead-1", permission_code="ATTENDANCE_OVERRIDE", employee_id="emp-sales")
