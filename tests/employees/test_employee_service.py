from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import pytest

from pos_backoffice.common.date_ranges import resolve_preset
from pos_backoffice.common.pagination import paginate
from pos_backoffice.core.enums import EmployeeStatus
from pos_backoffice.core.exceptions import ConflictError, NotFoundError, ValidationError
from pos_backoffice.employees.model import Employee, EmployeeFilter, OrgUnit
from pos_backoffice.employees.service import EmployeeService, OrgUnitService, next_employee_id

NOW = datetime(2025, 6, 10, 9, 0)


class InMemoryEmployees:
    def __init__(self, employees=()):
        self._by_id: dict[str, Employee] = {e.id: e for e in employees}

    def list_all(self, *, branch_id: Optional[str] = None):
        return [e for e in self._by_id.values() if not branch_id or e.branch_id == branch_id]

    def list_paginated(self, criteria, page):
        return paginate([e for e in self._by_id.values() if criteria.matches(e)], page)

    def get_by_id(self, employee_pk: str) -> Optional[Employee]:
        return self._by_id.get(employee_pk)

    def get_by_employee_id(self, employee_id: str) -> Optional[Employee]:
        return next((e for e in self._by_id.values() if e.employee_id == employee_id), None)

    def list_employee_ids(self):
        return [e.employee_id for e in self._by_id.values()]

    def create(self, employee: Employee) -> Employee:
        self._by_id[employee.id] = employee
        return employee

    def update(self, employee: Employee) -> Employee:
        self._by_id[employee.id] = employee
        return employee

    def delete(self, employee_pk: str) -> bool:
        return self._by_id.pop(employee_pk, None) is not None


class InMemoryUnits:
    def __init__(self):
        self._by_id: dict[str, OrgUnit] = {}

    def list_all(self):
        return sorted(self._by_id.values(), key=lambda u: u.name)

    def get_by_id(self, unit_id):
        return self._by_id.get(unit_id)

    def get_by_name(self, name):
        return next((u for u in self._by_id.values() if u.name.lower() == name.lower()), None)

    def create(self, unit):
        self._by_id[unit.id] = unit
        return unit

    def update(self, unit):
        self._by_id[unit.id] = unit
        return unit

    def delete(self, unit_id):
        return self._by_id.pop(unit_id, None) is not None


def _employee(pk: str, employee_id: str, name: str, **kw) -> Employee:
    base = dict(
        id=pk,
        employee_id=employee_id,
        name=name,
        position="Cashier",
        department="Front",
        joining_date=date(2025, 1, 15),
        salary=Decimal("1000"),
    )
    base.update(kw)
    return Employee(**base)


def _service(*employees: Employee) -> EmployeeService:
    return EmployeeService(InMemoryEmployees(employees), clock=lambda: NOW)


def test_next_employee_id_uses_highest_suffix():
    assert next_employee_id([]) == "E001"
    assert next_employee_id(["E001", "E010", "X99", "e004"]) == "E011"


def test_create_validates_and_rejects_duplicate_id():
    svc = _service(_employee("1", "E001", "Ann"))
    with pytest.raises(ValidationError):
        svc.create({"employeeId": "E002", "name": "", "position": "Cook", "department": "Kitchen"})
    with pytest.raises(ValidationError):
        svc.create({"employeeId": "E002", "name": "Bo", "position": "Cook", "department": "K", "salary": "-1"})
    with pytest.raises(ConflictError):
        svc.create({"employeeId": "E001", "name": "Bo", "position": "Cook", "department": "Kitchen"})

    created = svc.create(
        {"employeeId": "E002", "name": "Bo", "position": "Cook", "department": "Kitchen", "salary": "1,200"},
        branch_id="b1",
    )
    assert created.salary == Decimal("1200")
    assert created.joining_date == NOW.date()
    assert created.branch_id == "b1"
    assert created.status == EmployeeStatus.ACTIVE


def test_update_is_partial():
    svc = _service(_employee("1", "E001", "Ann", email="ann@example.com"))
    updated = svc.update("1", {"salary": 1500, "status": "inactive"})
    assert updated.salary == Decimal("1500")
    assert updated.status == EmployeeStatus.INACTIVE
    assert updated.email == "ann@example.com"
    assert updated.name == "Ann"


def test_update_rejects_taken_employee_id():
    svc = _service(_employee("1", "E001", "Ann"), _employee("2", "E002", "Bo"))
    with pytest.raises(ConflictError):
        svc.update("2", {"employeeId": "E001"})


def test_delete_missing_employee():
    with pytest.raises(NotFoundError):
        _service().delete("nope")


def test_filter_by_search_status_and_joined():
    svc = _service(
        _employee("1", "E001", "Ann Lee", joining_date=date(2025, 6, 1)),
        _employee("2", "E002", "Bob", status=EmployeeStatus.INACTIVE, joining_date=date(2025, 6, 2)),
        _employee("3", "E003", "Cara", joining_date=date(2024, 12, 1), phone="555-0199"),
    )
    this_month = resolve_preset("thisMonth", today=NOW.date())

    names = lambda f: [e.name for e in svc.list_employees(f)]  # noqa: E731
    assert names(EmployeeFilter(search="lee")) == ["Ann Lee"]
    assert names(EmployeeFilter(search="0199")) == ["Cara"]
    assert names(EmployeeFilter(status=EmployeeStatus.ACTIVE, joined=this_month)) == ["Ann Lee"]


def test_import_rows_reports_bad_rows_and_fills_defaults():
    svc = _service(_employee("1", "E001", "Ann"))
    result = svc.import_rows(
        [
            {"Employee ID": "", "Name": "Bo", "Salary": "900"},
            {"Employee ID": "E001", "Name": "Dup"},
            {"Employee ID": "E050", "Name": ""},
            {"employee_id": "", "name": "Cy"},
        ]
    )
    assert result.success == 2
    assert result.failed == 2
    assert result.errors[0].startswith("Row 2: ")
    assert result.errors[1] == "Row 3: Name is required"

    by_name = {e.name: e for e in svc.list_employees(EmployeeFilter())}
    assert by_name["Bo"].employee_id == "E002"
    assert by_name["Bo"].position == "Staff"
    assert by_name["Bo"].department == "General"
    assert by_name["Cy"].employee_id == "E003"


def test_import_rows_skips_rows_that_are_not_objects():
    svc = _service()
    result = svc.import_rows([{"name": "Ok"}, "junk", {"name": "Also ok"}, None])
    assert result.success == 2
    assert result.failed == 2
    assert result.errors[0] == "Row 2: Row must be an object with column headers"
    assert result.errors[1].startswith("Row 4: ")
    assert sorted(e.name for e in svc.list_employees(EmployeeFilter())) == ["Also ok", "Ok"]


def test_import_prefers_employee_id_over_record_id():
    svc = _service()
    result = svc.import_rows([{"id": "3f2a-uuid", "employeeId": "E777", "name": "Ann"}])
    assert result.success == 1
    assert [e.employee_id for e in svc.list_employees(EmployeeFilter())] == ["E777"]


def test_import_template_header_row():
    svc = _service()
    file = svc.import_template(fmt="csv")
    lines = file.content.decode("utf-8-sig").splitlines()
    assert lines[0] == "Employee ID,Name,Position,Department,Email,Phone,Joining Date,Salary,Photo URL,Status"
    assert lines[1].startswith("EMP001,John Doe,Manager,Admin,")
    assert len(lines) == 3
    assert file.filename == "employees_template_2025-06-10.csv"


def test_export_csv_contains_rows():
    svc = _service(_employee("1", "E001", "Ann"))
    file = svc.export(EmployeeFilter(), fmt="csv")
    text = file.content.decode("utf-8-sig")
    assert file.filename == "employees_2025-06-10.csv"
    assert "E001,Ann,Cashier,Front" in text


def test_org_units_have_unique_names():
    svc = OrgUnitService(InMemoryUnits(), label="Position")
    unit = svc.create(name="Cook")
    with pytest.raises(ConflictError):
        svc.create(name="cook")
    renamed = svc.update(unit.id, name="Chef")
    assert renamed.name == "Chef"
    svc.delete(unit.id)
    with pytest.raises(NotFoundError):
        svc.delete(unit.id)


def test_employee_to_dict_is_json_friendly():
    e = replace(_employee("1", "E001", "Ann"), created_at=datetime(2025, 1, 15, 8, 0))
    d = e.to_dict()
    assert d["joiningDate"] == "2025-01-15"
    assert d["salary"] == 1000.0
    assert d["status"] == "active"
