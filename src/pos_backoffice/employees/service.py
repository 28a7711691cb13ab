from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import date
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

from ..common.bulk import ImportResult
from ..common.datetime_utils import now_local, parse_iso_date
from ..common.money import to_decimal
from ..common.pagination import Page, PageRequest
from ..common.validators import optional_str, require_non_empty, require_non_negative
from ..core.constants import EMPLOYEE_ID_PREFIX
from ..core.enums import EmployeeStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..database.mysql_base import new_id
from ..spreadsheets.columns import (
    EMPLOYEE_EXPORT_HEADERS,
    EMPLOYEE_IMPORT_ALIASES,
    EMPLOYEE_TEMPLATE_HEADERS,
    normalize_row_keys,
)
from ..spreadsheets.writer import ExportFile, write_table
from .model import Employee, EmployeeFilter, OrgUnit
from .repository import EmployeeRepository, OrgUnitRepository

logger = logging.getLogger(__name__)

_EMPLOYEE_ID_RE = re.compile(rf"^{EMPLOYEE_ID_PREFIX}(\d+)$", re.IGNORECASE)


def next_employee_id(existing: Iterable[str]) -> str:
    """``E`` + (highest numeric suffix + 1), zero padded to three digits."""
    highest = 0
    for value in existing:
        m = _EMPLOYEE_ID_RE.match((value or "").strip())
        if m:
            highest = max(highest, int(m.group(1)))
    return f"{EMPLOYEE_ID_PREFIX}{highest + 1:03d}"


def _parse_status(value: Any) -> EmployeeStatus:
    raw = (str(value).strip().lower() if value is not None else "") or EmployeeStatus.ACTIVE.value
    try:
        return EmployeeStatus(raw)
    except ValueError:
        raise ValidationError("Status must be active or inactive")


def _parse_joining_date(value: Any, today: date) -> date:
    if value is None or str(value).strip() == "":
        return today
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value).strip()[:10])
    except ValueError:
        raise ValidationError("Joining date must be YYYY-MM-DD")


def _parse_email(value: Any) -> Optional[str]:
    email = optional_str(value)
    if email and "@" not in email:
        raise ValidationError("Invalid email address")
    return email


class EmployeeService:
    """Use cases behind the HRM page."""

    def __init__(self, employees: EmployeeRepository, *, clock: Callable[[], Any] = now_local):
        self._employees = employees
        self._clock = clock

    def _today(self) -> date:
        return self._clock().date()

    def list_employees(self, criteria: EmployeeFilter) -> List[Employee]:
        return [e for e in self._employees.list_all(branch_id=criteria.branch_id) if criteria.matches(e)]

    def list_paginated(self, criteria: EmployeeFilter, page: PageRequest) -> Page[Employee]:
        return self._employees.list_paginated(criteria, page)

    def get(self, employee_pk: str) -> Employee:
        employee = self._employees.get_by_id(employee_pk)
        if not employee:
            raise NotFoundError("Employee not found")
        return employee

    def next_employee_id(self) -> str:
        return next_employee_id(self._employees.list_employee_ids())

    def _ensure_unique_employee_id(self, employee_id: str, *, exclude_pk: Optional[str] = None) -> None:
        existing = self._employees.get_by_employee_id(employee_id)
        if existing and existing.id != exclude_pk:
            raise ConflictError(f"Employee ID {employee_id} already exists")

    def create(self, data: Mapping[str, Any], *, branch_id: Optional[str] = None) -> Employee:
        salary = require_non_negative(to_decimal(data.get("salary"), "Salary"), "Salary")
        employee = Employee(
            id=new_id(),
            employee_id=require_non_empty(data.get("employeeId"), "Employee ID"),
            name=require_non_empty(data.get("name"), "Name"),
            position=require_non_empty(data.get("position"), "Position"),
            department=require_non_empty(data.get("department"), "Department"),
            branch_id=optional_str(data.get("branchId")) or branch_id,
            email=_parse_email(data.get("email")),
            phone=optional_str(data.get("phone")),
            joining_date=_parse_joining_date(data.get("joiningDate"), self._today()),
            salary=salary,
            photo_url=optional_str(data.get("photoUrl")),
            status=_parse_status(data.get("status")),
        )
        self._ensure_unique_employee_id(employee.employee_id)
        created = self._employees.create(employee)
        logger.info("Created employee %s (%s)", created.employee_id, created.name)
        return created

    def update(self, employee_pk: str, data: Mapping[str, Any]) -> Employee:
        """Partial update: only keys present in ``data`` change."""
        current = self.get(employee_pk)
        changes: dict = {}
        for key, attr, label in (
            ("employeeId", "employee_id", "Employee ID"),
            ("name", "name", "Name"),
            ("position", "position", "Position"),
            ("department", "department", "Department"),
        ):
            if key in data:
                changes[attr] = require_non_empty(data.get(key), label)
        if "email" in data:
            changes["email"] = _parse_email(data.get("email"))
        for key, attr in (("phone", "phone"), ("photoUrl", "photo_url"), ("branchId", "branch_id")):
            if key in data:
                changes[attr] = optional_str(data.get(key))
        if "joiningDate" in data:
            changes["joining_date"] = _parse_joining_date(data.get("joiningDate"), current.joining_date)
        if "salary" in data:
            changes["salary"] = require_non_negative(to_decimal(data.get("salary"), "Salary"), "Salary")
        if "status" in data:
            changes["status"] = _parse_status(data.get("status"))

        if "employee_id" in changes and changes["employee_id"] != current.employee_id:
            self._ensure_unique_employee_id(changes["employee_id"], exclude_pk=current.id)

        updated = self._employees.update(replace(current, **changes))
        logger.info("Updated employee %s", updated.employee_id)
        return updated

    def delete(self, employee_pk: str) -> None:
        employee = self.get(employee_pk)
        if not self._employees.delete(employee_pk):
            raise NotFoundError("Employee not found")
        logger.info("Deleted employee %s", employee.employee_id)

    def import_rows(self, rows: Sequence[Mapping[str, Any]], *, branch_id: Optional[str] = None) -> ImportResult:
        """Create employees from spreadsheet/JSON rows, one result per row.

        Header spellings like "Employee ID", employeeId and employee_id are
        all accepted. Missing optional values fall back to defaults.
        """
        result = ImportResult()
        known_ids = list(self._employees.list_employee_ids())
        for index, raw in enumerate(rows):
            label = f"Row {index + 1}"
            try:
                row = normalize_row_keys(raw, EMPLOYEE_IMPORT_ALIASES)
                payload = {
                    "employeeId": optional_str(row.get("employeeId")) or next_employee_id(known_ids),
                    "name": row.get("name"),
                    "position": optional_str(row.get("position")) or "Staff",
                    "department": optional_str(row.get("department")) or "General",
                    "email": row.get("email"),
                    "phone": row.get("phone"),
                    "joiningDate": row.get("joiningDate"),
                    "salary": row.get("salary"),
                    "photoUrl": row.get("photoUrl"),
                    "status": row.get("status"),
                }
                created = self.create(payload, branch_id=branch_id)
            except (ValidationError, ConflictError) as e:
                result.record_failure(label, str(e))
                continue
            known_ids.append(created.employee_id)
            result.success += 1

        logger.info("Employee import finished: %d ok, %d failed", result.success, result.failed)
        return result

    def export(self, criteria: EmployeeFilter, *, fmt: str) -> ExportFile:
        rows = [
            {
                "Employee ID": e.employee_id,
                "Name": e.name,
                "Position": e.position,
                "Department": e.department,
                "Email": e.email or "",
                "Phone": e.phone or "",
                "Joining Date": e.joining_date.strftime("%Y-%m-%d"),
                "Salary": float(e.salary),
                "Photo URL": e.photo_url or "",
                "Status": e.status.value,
            }
            for e in self.list_employees(criteria)
        ]
        return write_table(
            rows,
            EMPLOYEE_EXPORT_HEADERS,
            fmt=fmt,
            prefix="employees",
            today=self._today(),
            sheet_name="Employees",
        )

    def import_template(self, *, fmt: str) -> ExportFile:
        samples = [
            {
                "Employee ID": "EMP001",
                "Name": "John Doe",
                "Position": "Manager",
                "Department": "Admin",
                "Email": "john.doe@example.com",
                "Phone": "+1234567890",
                "Joining Date": "2024-01-15",
                "Salary": "5000.00",
                "Photo URL": "https://example.com/photo.jpg",
                "Status": "active",
            },
            {
                "Employee ID": "EMP002",
                "Name": "Jane Smith",
                "Position": "Chef",
                "Department": "Kitchen",
                "Email": "jane.smith@example.com",
                "Phone": "+1234567891",
                "Joining Date": "2024-02-01",
                "Salary": "4000.00",
                "Photo URL": "",
                "Status": "active",
            },
        ]
        return write_table(
            samples,
            EMPLOYEE_TEMPLATE_HEADERS,
            fmt=fmt,
            prefix="employees_template",
            today=self._today(),
            sheet_name="Employees",
        )


class OrgUnitService:
    """Positions and departments: named lookup values with unique names."""

    def __init__(self, units: OrgUnitRepository, *, label: str):
        self._units = units
        self._label = label

    def list_all(self) -> Sequence[OrgUnit]:
        return self._units.list_all()

    def _get(self, unit_id: str) -> OrgUnit:
        unit = self._units.get_by_id(unit_id)
        if not unit:
            raise NotFoundError(f"{self._label} not found")
        return unit

    def _ensure_unique(self, name: str, *, exclude_id: Optional[str] = None) -> None:
        existing = self._units.get_by_name(name)
        if existing and existing.id != exclude_id:
            raise ConflictError(f"{self._label} '{name}' already exists")

    def create(self, *, name: Any, description: Any = None) -> OrgUnit:
        name = require_non_empty(name, f"{self._label} name")
        self._ensure_unique(name)
        unit = self._units.create(OrgUnit(id=new_id(), name=name, description=optional_str(description)))
        logger.info("Created %s %s", self._label.lower(), name)
        return unit

    def update(self, unit_id: str, *, name: Any, description: Any = None) -> OrgUnit:
        current = self._get(unit_id)
        name = require_non_empty(name, f"{self._label} name")
        self._ensure_unique(name, exclude_id=current.id)
        return self._units.update(OrgUnit(id=current.id, name=name, description=optional_str(description)))

    def delete(self, unit_id: str) -> None:
        self._get(unit_id)
        self._units.delete(unit_id)
        logger.info("Deleted %s %s", self._label.lower(), unit_id)
