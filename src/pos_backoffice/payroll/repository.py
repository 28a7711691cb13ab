from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional, Protocol, Sequence

from ..core.enums import LedgerKind, LedgerStatus
from .model import LedgerEntry, StaffSalary


class SalaryRepository(Protocol):
    def list_in_range(
        self,
        *,
        start: Optional[datetime],
        end: Optional[datetime],
        employee_ids: Optional[Iterable[str]] = None,
    ) -> Sequence[StaffSalary]:
        raise NotImplementedError

    def latest_by_employee(self, employee_ids: Iterable[str]) -> Dict[str, StaffSalary]:
        raise NotImplementedError

    def get_by_id(self, salary_id: str) -> Optional[StaffSalary]:
        raise NotImplementedError

    def create(self, salary: StaffSalary, *, settle_entry_ids: Sequence[str] = ()) -> StaffSalary:
        """Insert the salary and mark the given ledger entries settled, atomically."""
        raise NotImplementedError

    def update(self, salary: StaffSalary) -> StaffSalary:
        raise NotImplementedError

    def delete(self, salary_id: str) -> bool:
        raise NotImplementedError


class LedgerRepository(Protocol):
    def list_entries(
        self,
        *,
        kind: Optional[LedgerKind] = None,
        status: Optional[LedgerStatus] = None,
        employee_ids: Optional[Iterable[str]] = None,
    ) -> Sequence[LedgerEntry]:
        raise NotImplementedError

    def pending_totals(self, employee_ids: Iterable[str]) -> Dict[str, Dict[LedgerKind, Decimal]]:
        raise NotImplementedError

    def get_by_id(self, entry_id: str) -> Optional[LedgerEntry]:
        raise NotImplementedError

    def create(self, entry: LedgerEntry) -> LedgerEntry:
        raise NotImplementedError

    def update(self, entry: LedgerEntry) -> LedgerEntry:
        raise NotImplementedError

    def delete(self, entry_id: str) -> bool:
        raise NotImplementedError
