from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..common.date_ranges import DateRange
from ..common.serialization import to_json_value
from ..core.enums import EmployeeStatus


@dataclass(frozen=True)
class Employee:
    id: str
    employee_id: str
    name: str
    position: str
    department: str
    joining_date: date
    salary: Decimal
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    branch_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    photo_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE

    def to_dict(self) -> dict:
        return to_json_value(
            {
                "id": self.id,
                "employeeId": self.employee_id,
                "name": self.name,
                "position": self.position,
                "department": self.department,
                "branchId": self.branch_id,
                "email": self.email,
                "phone": self.phone,
                "joiningDate": self.joining_date,
                "salary": self.salary,
                "photoUrl": self.photo_url,
                "status": self.status,
                "createdAt": self.created_at,
            }
        )


@dataclass(frozen=True)
class OrgUnit:
    """A position or a department; both are just named lookup values."""

    id: str
    name: str
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description}


@dataclass(frozen=True)
class EmployeeFilter:
    """Criteria shared by the in-memory list filter and the SQL query."""

    search: str = ""
    status: Optional[EmployeeStatus] = None
    position: Optional[str] = None
    department: Optional[str] = None
    joined: Optional[DateRange] = None
    branch_id: Optional[str] = None

    SEARCH_FIELDS = ("employee_id", "name", "position", "department", "email", "phone")

    def matches(self, employee: Employee) -> bool:
        if self.branch_id and employee.branch_id != self.branch_id:
            return False
        if self.status and employee.status != self.status:
            return False
        if self.position and employee.position != self.position:
            return False
        if self.department and employee.department != self.department:
            return False
        if self.joined and not self.joined.contains(employee.joining_date):
            return False
        term = self.search.strip().lower()
        if term:
            haystack = (getattr(employee, f) or "" for f in self.SEARCH_FIELDS)
            if not any(term in str(v).lower() for v in haystack):
                return False
        return True

