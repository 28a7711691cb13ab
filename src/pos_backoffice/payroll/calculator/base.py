from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Mapping, Optional

from ...employees.model import Employee
from ...core.enums import LedgerKind
from ..model import PayableBreakdown, StaffSalary


class PayableCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def breakdown(
        self,
        employee: Employee,
        *,
        last_salary: Optional[StaffSalary],
        pending: Mapping[LedgerKind, Decimal],
    ) -> PayableBreakdown:
        raise NotImplementedError
