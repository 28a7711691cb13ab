from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from ..common.serialization import to_json_value
from ..core.enums import LedgerKind, LedgerStatus

ZERO = Decimal("0")


@dataclass(frozen=True)
class StaffSalary:
    """One released salary payment."""

    id: str
    employee_id: str
    salary_date: datetime
    salary_amount: Decimal
    deduct_salary: Decimal
    total_salary: Decimal
    carried_unreleased: Decimal = ZERO
    note: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return to_json_value(
            {
                "id": self.id,
                "employeeId": self.employee_id,
                "salaryDate": self.salary_date,
                "salaryAmount": self.salary_amount,
                "deductSalary": self.deduct_salary,
                "totalSalary": self.total_salary,
                "carriedUnreleased": self.carried_unreleased,
                "note": self.note,
                "createdAt": self.created_at,
            }
        )


@dataclass(frozen=True)
class LedgerEntry:
    """Deduction, advance, loan, unpaid leave or previous due for a staff member.

    Pending entries adjust the next payable; releasing a salary settles them.
    """

    id: str
    employee_id: str
    kind: LedgerKind
    amount: Decimal
    entry_date: date
    status: LedgerStatus = LedgerStatus.PENDING
    note: Optional[str] = None
    settled_salary_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == LedgerStatus.PENDING

    def to_dict(self) -> dict:
        return to_json_value(
            {
                "id": self.id,
                "employeeId": self.employee_id,
                "kind": self.kind,
                "amount": self.amount,
                "date": self.entry_date,
                "status": self.status,
                "note": self.note,
                "settledSalaryId": self.settled_salary_id,
                "createdAt": self.created_at,
            }
        )


@dataclass(frozen=True)
class PayableBreakdown:
    employee_id: str
    employee_name: str
    base_salary: Decimal
    carried: Decimal = ZERO
    previous_due: Decimal = ZERO
    deductions: Decimal = ZERO
    advances: Decimal = ZERO
    loans: Decimal = ZERO
    unpaid_leave: Decimal = ZERO

    @property
    def total_withheld(self) -> Decimal:
        return self.deductions + self.advances + self.loans + self.unpaid_leave

    @property
    def payable(self) -> Decimal:
        return self.base_salary + self.carried + self.previous_due - self.total_withheld

    def to_dict(self) -> dict:
        return to_json_value(
            {
                "employeeId": self.employee_id,
                "employeeName": self.employee_name,
                "baseSalary": self.base_salary,
                "carriedUnreleased": self.carried,
                "previousDue": self.previous_due,
                "deductions": self.deductions,
                "advances": self.advances,
                "loans": self.loans,
                "unpaidLeave": self.unpaid_leave,
                "totalWithheld": self.total_withheld,
                "payable": self.payable,
            }
        )


@dataclass
class BulkResult:
    success: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    created: List[StaffSalary] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "failed": self.failed,
            "errors": list(self.errors),
            "created": [s.to_dict() for s in self.created],
        }
