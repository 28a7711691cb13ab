from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import pytest

from pos_backoffice.common.date_ranges import month_range
from pos_backoffice.core.enums import EmployeeStatus, LedgerKind, LedgerStatus
from pos_backoffice.core.exceptions import NotFoundError, ValidationError
from pos_backoffice.employees.model import Employee
from pos_backoffice.payroll.model import LedgerEntry, StaffSalary
from pos_backoffice.payroll.service import PayrollService

NOW = datetime(2025, 3, 31, 18, 0)


class InMemoryEmployees:
    def __init__(self, employees):
        self._by_id = {e.id: e for e in employees}

    def list_all(self, *, branch_id: Optional[str] = None):
        return [e for e in self._by_id.values() if not branch_id or e.branch_id == branch_id]

    def get_by_id(self, employee_pk):
        return self._by_id.get(employee_pk)


class InMemoryLedger:
    def __init__(self):
        self.entries: dict[str, LedgerEntry] = {}

    def list_entries(self, *, kind=None, status=None, employee_ids=None):
        ids = set(employee_ids) if employee_ids is not None else None
        return [
            e
            for e in self.entries.values()
            if (kind is None or e.kind == kind)
            and (status is None or e.status == status)
            and (ids is None or e.employee_id in ids)
        ]

    def pending_totals(self, employee_ids):
        out: dict[str, dict[LedgerKind, Decimal]] = {}
        for e in self.list_entries(status=LedgerStatus.PENDING, employee_ids=employee_ids):
            per = out.setdefault(e.employee_id, {})
            per[e.kind] = per.get(e.kind, Decimal("0")) + e.amount
        return out

    def get_by_id(self, entry_id):
        return self.entries.get(entry_id)

    def create(self, entry):
        self.entries[entry.id] = entry
        return entry

    def update(self, entry):
        self.entries[entry.id] = entry
        return entry

    def delete(self, entry_id):
        return self.entries.pop(entry_id, None) is not None


class InMemorySalaries:
    def __init__(self, ledger: InMemoryLedger):
        self._ledger = ledger
        self.rows: list[StaffSalary] = []

    def list_in_range(self, *, start, end, employee_ids=None):
        ids = set(employee_ids) if employee_ids is not None else None
        return [
            s
            for s in self.rows
            if (start is None or s.salary_date >= start)
            and (end is None or s.salary_date <= end)
            and (ids is None or s.employee_id in ids)
        ]

    def latest_by_employee(self, employee_ids):
        latest = {}
        for s in self.rows:
            if s.employee_id in set(employee_ids):
                current = latest.get(s.employee_id)
                if current is None or s.salary_date >= current.salary_date:
                    latest[s.employee_id] = s
        return latest

    def get_by_id(self, salary_id):
        return next((s for s in self.rows if s.id == salary_id), None)

    def create(self, salary, *, settle_entry_ids=()):
        self.rows.append(salary)
        for entry_id in settle_entry_ids:
            entry = self._ledger.entries[entry_id]
            self._ledger.entries[entry_id] = replace(
                entry, status=LedgerStatus.SETTLED, settled_salary_id=salary.id
            )
        return salary

    def update(self, salary):
        self.rows = [salary if s.id == salary.id else s for s in self.rows]
        return salary

    def delete(self, salary_id):
        before = len(self.rows)
        self.rows = [s for s in self.rows if s.id != salary_id]
        for entry_id, entry in list(self._ledger.entries.items()):
            if entry.settled_salary_id == salary_id:
                self._ledger.entries[entry_id] = replace(
                    entry, status=LedgerStatus.PENDING, settled_salary_id=None
                )
        return len(self.rows) < before


def _employee(pk: str, name: str, salary: str, **kw) -> Employee:
    return Employee(
        id=pk,
        employee_id=f"E{pk.zfill(3)}",
        name=name,
        position="Cook",
        department="Kitchen",
        joining_date=date(2024, 1, 1),
        salary=Decimal(salary),
        **kw,
    )


def _setup(*employees):
    ledger = InMemoryLedger()
    salaries = InMemorySalaries(ledger)
    svc = PayrollService(InMemoryEmployees(employees), salaries, ledger, clock=lambda: NOW)
    return svc, salaries, ledger


def _payable(svc: PayrollService, pk: str) -> Decimal:
    return next(b.payable for b in svc.payables(include_inactive=True) if b.employee_id == pk)


def test_payables_exclude_inactive_and_sort_by_name():
    svc, _, _ = _setup(
        _employee("1", "Zed", "100"),
        _employee("2", "amy", "100"),
        _employee("3", "Old", "100", status=EmployeeStatus.INACTIVE),
    )
    assert [b.employee_name for b in svc.payables()] == ["amy", "Zed"]
    assert len(svc.payables(include_inactive=True)) == 3


def test_payable_summary_counts_inactive_employees():
    svc, _, _ = _setup(
        _employee("1", "Ann", "1000"),
        _employee("2", "Old", "500", status=EmployeeStatus.INACTIVE),
    )
    svc.create_entry(LedgerKind.DEDUCTION, {"employeeId": "2", "amount": "40"})
    assert svc.payable_summary() == {"totalPayable": 1460.0, "totalDeduction": 40.0}


class StaleTotalsLedger(InMemoryLedger):
    """Aggregated totals lag behind the entry list."""

    def pending_totals(self, employee_ids):
        return {}


def test_release_deducts_the_entries_it_settles():
    ledger = StaleTotalsLedger()
    salaries = InMemorySalaries(ledger)
    svc = PayrollService(InMemoryEmployees([_employee("1", "Ann", "1000")]), salaries, ledger, clock=lambda: NOW)
    svc.create_entry(LedgerKind.DEDUCTION, {"employeeId": "1", "amount": "100"})

    svc.release(["1"])
    released = salaries.rows[0]
    assert released.deduct_salary == Decimal("100.00")
    assert released.total_salary == Decimal("900.00")
    assert all(e.settled_salary_id == released.id for e in ledger.entries.values())


def test_release_settles_pending_entries():
    svc, salaries, ledger = _setup(_employee("1", "Ann", "1000"))
    svc.create_entry(LedgerKind.DEDUCTION, {"employeeId": "1", "amount": "100"})
    svc.create_entry(LedgerKind.ADVANCE, {"employeeId": "1", "amount": 50})
    svc.create_entry(LedgerKind.PREVIOUS_DUE, {"employeeId": "1", "amount": 20})

    summary = svc.payable_summary()
    assert summary == {"totalPayable": 870.0, "totalDeduction": 100.0}

    result = svc.release(["1"])
    assert result.success == 1
    released = salaries.rows[0]
    assert released.total_salary == Decimal("870.00")
    assert released.deduct_salary == Decimal("150.00")
    assert released.carried_unreleased == Decimal("0.00")
    assert released.salary_date == NOW
    assert all(e.status == LedgerStatus.SETTLED for e in ledger.entries.values())

    assert _payable(svc, "1") == Decimal("1000")


def test_partial_release_carries_remainder():
    svc, salaries, _ = _setup(_employee("1", "Ann", "1000"))
    svc.release(["1"], amounts={"1": "600"}, salary_date="2025-03-31")
    assert salaries.rows[0].carried_unreleased == Decimal("400.00")
    assert _payable(svc, "1") == Decimal("1400")


def test_negative_payable_releases_zero_and_carries_debt():
    svc, salaries, _ = _setup(_employee("1", "Ann", "100"))
    svc.create_entry(LedgerKind.LOAN, {"employeeId": "1", "amount": "300"})
    assert _payable(svc, "1") == Decimal("-200")

    svc.release(["1"])
    assert salaries.rows[0].total_salary == Decimal("0.00")
    assert salaries.rows[0].carried_unreleased == Decimal("-200.00")
    assert _payable(svc, "1") == Decimal("-100")


def test_release_reports_unknown_employee():
    svc, _, _ = _setup(_employee("1", "Ann", "100"))
    result = svc.release(["1", "ghost"])
    assert result.success == 1
    assert result.failed == 1
    assert result.errors == ["Employee ghost: Employee not found"]


def test_deleting_salary_reopens_its_entries():
    svc, salaries, ledger = _setup(_employee("1", "Ann", "500"))
    svc.create_entry(LedgerKind.DEDUCTION, {"employeeId": "1", "amount": "50"})
    svc.release(["1"])
    svc.delete_salary(salaries.rows[0].id)
    assert [e.status for e in ledger.entries.values()] == [LedgerStatus.PENDING]
    assert _payable(svc, "1") == Decimal("450")


def test_settled_entries_are_read_only():
    svc, _, _ = _setup(_employee("1", "Ann", "500"))
    entry = svc.create_entry(LedgerKind.DEDUCTION, {"employeeId": "1", "amount": "50"})
    svc.release(["1"])
    with pytest.raises(ValidationError):
        svc.update_entry(LedgerKind.DEDUCTION, entry.id, {"amount": "10"})
    with pytest.raises(ValidationError):
        svc.delete_entry(LedgerKind.DEDUCTION, entry.id)


def test_entry_kind_must_match_route():
    svc, _, _ = _setup(_employee("1", "Ann", "500"))
    entry = svc.create_entry(LedgerKind.LOAN, {"employeeId": "1", "amount": "50"})
    with pytest.raises(NotFoundError):
        svc.delete_entry(LedgerKind.ADVANCE, entry.id)
    with pytest.raises(ValidationError):
        svc.create_entry(LedgerKind.LOAN, {"employeeId": "1", "amount": "0"})


def test_bulk_create_and_summary_for_month():
    svc, _, _ = _setup(_employee("1", "Ann", "500"), _employee("2", "Bo", "400"))
    result = svc.bulk_create(
        [
            {"employeeId": "1", "salaryAmount": "500", "deductSalary": "50", "salaryDate": "2025-03-05"},
            {"employeeId": "2", "salaryAmount": "400", "salaryDate": "2025-02-05"},
            {"employeeId": "9", "employeeName": "Ghost", "salaryAmount": "1"},
        ]
    )
    assert result.success == 2
    assert result.errors == ["Employee Ghost: Employee not found"]

    march = svc.summary(month_range(2025, 3))
    assert march == {
        "totalSalaries": 1,
        "totalAmount": 500.0,
        "totalDeductions": 50.0,
        "netTotal": 450.0,
        "employeeCount": 1,
    }
    rows = svc.list_with_employees(None)
    assert {r["employee"]["name"] for r in rows} == {"Ann", "Bo"}


def test_update_salary_recomputes_total():
    svc, salaries, _ = _setup(_employee("1", "Ann", "500"))
    created = svc.create_salary({"employeeId": "1", "salaryAmount": "500", "deductSalary": "0"})
    updated = svc.update_salary(created.id, {"deductSalary": "75"})
    assert updated.total_salary == Decimal("425.00")
    assert updated.salary_date == created.salary_date
