from __future__ import annotations

from decimal import Decimal
from typing import Mapping, Optional

from ...core.enums import LedgerKind
from ...employees.model import Employee
from ..model import ZERO, PayableBreakdown, StaffSalary
from .base import PayableCalculator


class StandardPayableCalculator(PayableCalculator):
    """Standard rule: base salary + carried + previous dues - pending withholdings.

    ``carried`` is what the most recent release left unpaid.
    """

    def breakdown(
        self,
        employee: Employee,
        *,
        last_salary: Optional[StaffSalary],
        pending: Mapping[LedgerKind, Decimal],
    ) -> PayableBreakdown:
        return PayableBreakdown(
            employee_id=employee.id,
            employee_name=employee.name,
            base_salary=employee.salary,
            carried=last_salary.carried_unreleased if last_salary else ZERO,
            previous_due=pending.get(LedgerKind.PREVIOUS_DUE, ZERO),
            deductions=pending.get(LedgerKind.DEDUCTION, ZERO),
            advances=pending.get(LedgerKind.ADVANCE, ZERO),
            loans=pending.get(LedgerKind.LOAN, ZERO),
            unpaid_leave=pending.get(LedgerKind.UNPAID_LEAVE, ZERO),
        )
