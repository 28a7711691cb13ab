from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..common.date_ranges import DateRange
from ..common.datetime_utils import now_local, parse_iso_datetime
from ..common.money import ZERO, optional_decimal, quantize, to_decimal
from ..common.validators import optional_str, require_non_empty, require_non_negative, require_positive
from ..core.enums import LedgerKind, LedgerStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..database.mysql_base import new_id
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from ..spreadsheets.columns import SALARY_EXPORT_HEADERS
from ..spreadsheets.writer import ExportFile, write_table
from .calculator.base import PayableCalculator
from .calculator.standard_calculator import StandardPayableCalculator
from .model import BulkResult, LedgerEntry, PayableBreakdown, StaffSalary
from .repository import LedgerRepository, SalaryRepository

logger = logging.getLogger(__name__)


def _parse_salary_date(value: Any, fallback: datetime) -> datetime:
    if value is None or str(value).strip() == "":
        return fallback
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    return parse_iso_datetime(str(value))


def summarize_salaries(salaries: Sequence[StaffSalary]) -> dict:
    return {
        "totalSalaries": len(salaries),
        "totalAmount": float(sum((s.salary_amount for s in salaries), ZERO)),
        "totalDeductions": float(sum((s.deduct_salary for s in salaries), ZERO)),
        "netTotal": float(sum((s.total_salary for s in salaries), ZERO)),
        "employeeCount": len({s.employee_id for s in salaries}),
    }


def pending_by_kind(entries: Sequence[LedgerEntry]) -> Dict[LedgerKind, Decimal]:
    totals: Dict[LedgerKind, Decimal] = {}
    for entry in entries:
        totals[entry.kind] = totals.get(entry.kind, ZERO) + entry.amount
    return totals


class PayrollService:
    """Use cases behind the staff-salary page."""

    def __init__(
        self,
        employees: EmployeeRepository,
        salaries: SalaryRepository,
        ledger: LedgerRepository,
        *,
        calculator: Optional[PayableCalculator] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._employees = employees
        self._salaries = salaries
        self._ledger = ledger
        self._calculator = calculator or StandardPayableCalculator()
        self._clock = clock

    # --- payables -------------------------------------------------------

    def _scoped_employees(self, branch_id: Optional[str], *, include_inactive: bool = False) -> List[Employee]:
        employees = self._employees.list_all(branch_id=branch_id)
        if include_inactive:
            return list(employees)
        return [e for e in employees if e.is_active]

    def _breakdowns(self, employees: Sequence[Employee]) -> List[PayableBreakdown]:
        ids = [e.id for e in employees]
        latest = self._salaries.latest_by_employee(ids)
        pending = self._ledger.pending_totals(ids)
        return [
            self._calculator.breakdown(e, last_salary=latest.get(e.id), pending=pending.get(e.id, {}))
            for e in employees
        ]

    def payables(self, *, branch_id: Optional[str] = None, include_inactive: bool = False) -> List[PayableBreakdown]:
        employees = self._scoped_employees(branch_id, include_inactive=include_inactive)
        return sorted(self._breakdowns(employees), key=lambda b: b.employee_name.lower())

    def payable_summary(self, *, branch_id: Optional[str] = None) -> dict:
        """Totals over every employee in scope, inactive ones included."""
        rows = self.payables(branch_id=branch_id, include_inactive=True)
        return {
            "totalPayable": float(sum((r.payable for r in rows), ZERO)),
            "totalDeduction": float(sum((r.deductions for r in rows), ZERO)),
        }

    # --- salary records -------------------------------------------------

    def _get_employee(self, employee_pk: str) -> Employee:
        employee = self._employees.get_by_id(employee_pk)
        if not employee:
            raise NotFoundError("Employee not found")
        return employee

    def _get_salary(self, salary_id: str) -> StaffSalary:
        salary = self._salaries.get_by_id(salary_id)
        if not salary:
            raise NotFoundError("Salary record not found")
        return salary

    def get_salary(self, salary_id: str) -> StaffSalary:
        return self._get_salary(salary_id)

    def list_with_employees(self, period: Optional[DateRange], *, branch_id: Optional[str] = None) -> List[dict]:
        employees = {e.id: e for e in self._employees.list_all(branch_id=branch_id)}
        salaries = self._salaries.list_in_range(
            start=period.start if period else None,
            end=period.end if period else None,
            employee_ids=list(employees) if branch_id else None,
        )
        out = []
        for s in salaries:
            row = s.to_dict()
            e = employees.get(s.employee_id)
            row["employee"] = (
                {
                    "id": e.id,
                    "employeeId": e.employee_id,
                    "name": e.name,
                    "position": e.position,
                    "department": e.department,
                }
                if e
                else None
            )
            out.append(row)
        return out

    def summary(self, period: Optional[DateRange], *, branch_id: Optional[str] = None) -> dict:
        employee_ids = None
        if branch_id:
            employee_ids = [e.id for e in self._employees.list_all(branch_id=branch_id)]
        salaries = self._salaries.list_in_range(
            start=period.start if period else None,
            end=period.end if period else None,
            employee_ids=employee_ids,
        )
        return summarize_salaries(salaries)

    def _build_salary(self, data: Mapping[str, Any], *, base: Optional[StaffSalary] = None) -> StaffSalary:
        amount = to_decimal(data.get("salaryAmount", base.salary_amount if base else None), "Salary amount")
        deduction = to_decimal(data.get("deductSalary", base.deduct_salary if base else None), "Deduction")
        require_non_negative(amount, "Salary amount")
        require_non_negative(deduction, "Deduction")

        explicit_total = optional_decimal(data.get("totalSalary"), "Total salary")
        if explicit_total is not None:
            total = explicit_total
        elif base is not None and "salaryAmount" not in data and "deductSalary" not in data:
            total = base.total_salary
        else:
            total = amount - deduction
        require_non_negative(total, "Total salary")

        fallback = base.salary_date if base else self._clock()
        return StaffSalary(
            id=base.id if base else new_id(),
            employee_id=base.employee_id if base else require_non_empty(data.get("employeeId"), "Employee"),
            salary_date=_parse_salary_date(data.get("salaryDate"), fallback),
            salary_amount=quantize(amount),
            deduct_salary=quantize(deduction),
            total_salary=quantize(total),
            carried_unreleased=base.carried_unreleased if base else ZERO,
            note=optional_str(data.get("note")) if "note" in data else (base.note if base else None),
            created_at=base.created_at if base else None,
        )

    def create_salary(self, data: Mapping[str, Any]) -> StaffSalary:
        salary = self._build_salary(data)
        employee = self._get_employee(salary.employee_id)
        created = self._salaries.create(salary)
        logger.info("Recorded salary %s for %s", created.total_salary, employee.employee_id)
        return created

    def update_salary(self, salary_id: str, data: Mapping[str, Any]) -> StaffSalary:
        current = self._get_salary(salary_id)
        updated = self._salaries.update(self._build_salary(data, base=current))
        logger.info("Updated salary %s", salary_id)
        return updated

    def delete_salary(self, salary_id: str) -> None:
        self._get_salary(salary_id)
        self._salaries.delete(salary_id)
        logger.info("Deleted salary %s", salary_id)

    def bulk_create(self, rows: Sequence[Mapping[str, Any]]) -> BulkResult:
        """Record explicit salary rows; a bad row is reported and skipped."""
        result = BulkResult()
        for row in rows:
            label = str(row.get("employeeName") or row.get("employeeId") or "?")
            try:
                result.created.append(self.create_salary(row))
                result.success += 1
            except (ValidationError, NotFoundError, ConflictError) as e:
                result.failed += 1
                result.errors.append(f"Employee {label}: {e}")
        return result

    def release(
        self,
        employee_ids: Sequence[str],
        *,
        salary_date: Any = None,
        amounts: Optional[Mapping[str, Any]] = None,
        note: Optional[str] = None,
    ) -> BulkResult:
        """Pay out the current payable for each employee.

        The release amount defaults to the payable floored at zero. Pending
        ledger entries are settled by the release and the part of the payable
        that was not paid is carried into the next period.
        """
        result = BulkResult()
        when = _parse_salary_date(salary_date, self._clock())
        amounts = amounts or {}

        for employee_pk in employee_ids:
            label = employee_pk
            try:
                employee = self._get_employee(employee_pk)
                label = employee.name
                pending = self._ledger.list_entries(status=LedgerStatus.PENDING, employee_ids=[employee.id])
                latest = self._salaries.latest_by_employee([employee.id])
                breakdown = self._calculator.breakdown(
                    employee, last_salary=latest.get(employee.id), pending=pending_by_kind(pending)
                )

                released = optional_decimal(amounts.get(employee_pk), "Release amount")
                if released is None:
                    released = max(breakdown.payable, ZERO)
                require_non_negative(released, "Release amount")

                salary = StaffSalary(
                    id=new_id(),
                    employee_id=employee.id,
                    salary_date=when,
                    salary_amount=quantize(breakdown.base_salary),
                    deduct_salary=quantize(breakdown.total_withheld),
                    total_salary=quantize(released),
                    carried_unreleased=quantize(breakdown.payable - released),
                    note=optional_str(note),
                )
                result.created.append(self._salaries.create(salary, settle_entry_ids=[p.id for p in pending]))
                result.success += 1
                logger.info("Released %s to %s", salary.total_salary, employee.employee_id)
            except (ValidationError, NotFoundError) as e:
                result.failed += 1
                result.errors.append(f"Employee {label}: {e}")
        return result

    def export(self, period: Optional[DateRange], *, fmt: str, branch_id: Optional[str] = None) -> ExportFile:
        rows = []
        for s in self.list_with_employees(period, branch_id=branch_id):
            employee = s.get("employee") or {}
            rows.append(
                {
                    "Employee": employee.get("name") or s["employeeId"],
                    "Salary Date": str(s["salaryDate"])[:10],
                    "Salary Amount": s["salaryAmount"],
                    "Deductions": s["deductSalary"],
                    "Total": s["totalSalary"],
                }
            )
        return write_table(
            rows,
            SALARY_EXPORT_HEADERS,
            fmt=fmt,
            prefix="staff_salaries",
            today=self._clock().date(),
            sheet_name="Staff Salaries",
        )

    # --- ledger ---------------------------------------------------------

    def list_ledger(
        self,
        kind: LedgerKind,
        *,
        employee_pk: Optional[str] = None,
        status: Optional[LedgerStatus] = None,
        branch_id: Optional[str] = None,
    ) -> Sequence[LedgerEntry]:
        employee_ids = None
        if employee_pk:
            employee_ids = [employee_pk]
        elif branch_id:
            employee_ids = [e.id for e in self._employees.list_all(branch_id=branch_id)]
        return self._ledger.list_entries(kind=kind, status=status, employee_ids=employee_ids)

    def _get_entry(self, kind: LedgerKind, entry_id: str) -> LedgerEntry:
        entry = self._ledger.get_by_id(entry_id)
        if not entry or entry.kind != kind:
            raise NotFoundError("Entry not found")
        return entry

    def create_entry(self, kind: LedgerKind, data: Mapping[str, Any]) -> LedgerEntry:
        employee = self._get_employee(require_non_empty(data.get("employeeId"), "Employee"))
        amount = require_positive(to_decimal(data.get("amount"), "Amount"), "Amount")
        entry = LedgerEntry(
            id=new_id(),
            employee_id=employee.id,
            kind=kind,
            amount=quantize(amount),
            entry_date=_parse_salary_date(data.get("date"), self._clock()).date(),
            note=optional_str(data.get("note")),
        )
        created = self._ledger.create(entry)
        logger.info("Added %s of %s for %s", kind.value, created.amount, employee.employee_id)
        return created

    def update_entry(self, kind: LedgerKind, entry_id: str, data: Mapping[str, Any]) -> LedgerEntry:
        current = self._get_entry(kind, entry_id)
        if not current.is_pending:
            raise ValidationError("Settled entries cannot be changed")
        changes: Dict[str, Any] = {}
        if "amount" in data:
            changes["amount"] = quantize(require_positive(to_decimal(data.get("amount"), "Amount"), "Amount"))
        if "date" in data:
            changes["entry_date"] = _parse_salary_date(data.get("date"), self._clock()).date()
        if "note" in data:
            changes["note"] = optional_str(data.get("note"))
        return self._ledger.update(replace(current, **changes))

    def delete_entry(self, kind: LedgerKind, entry_id: str) -> None:
        current = self._get_entry(kind, entry_id)
        if not current.is_pending:
            raise ValidationError("Settled entries cannot be deleted")
        self._ledger.delete(entry_id)
        logger.info("Deleted %s %s", kind.value, entry_id)
