from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import EmployeeStatus


@dataclass(frozen=True)
class Employee:
    """Read model of an employee as the attendance module sees it.

    Owned by the employee-management component; never written from here.
    """

    employee_id: str
    employee_code: str
    first_name: str
    last_name: str
    status: str
    division_id: Optional[str] = None
    joining_date: Optional[date] = None
    created_at_date: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return str(self.status).upper() == EmployeeStatus.ACTIVE.value

    @property
    def employment_start(self) -> Optional[date]:
        return self.joining_date or self.created_at_date
