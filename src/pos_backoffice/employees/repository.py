from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..common.pagination import Page, PageRequest
from .model import Employee, EmployeeFilter, OrgUnit


class EmployeeRepository(Protocol):
    def list_all(self, *, branch_id: Optional[str] = None) -> Sequence[Employee]:
        raise NotImplementedError

    def list_paginated(self, criteria: EmployeeFilter, page: PageRequest) -> Page[Employee]:
        raise NotImplementedError

    def get_by_id(self, employee_pk: str) -> Optional[Employee]:
        raise NotImplementedError

    def get_by_employee_id(self, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def list_employee_ids(self) -> Sequence[str]:
        raise NotImplementedError

    def create(self, employee: Employee) -> Employee:
        raise NotImplementedError

    def update(self, employee: Employee) -> Employee:
        raise NotImplementedError

    def delete(self, employee_pk: str) -> bool:
        raise NotImplementedError


class OrgUnitRepository(Protocol):
    """Positions and departments share this interface (one table each)."""

    def list_all(self) -> Sequence[OrgUnit]:
        raise NotImplementedError

    def get_by_id(self, unit_id: str) -> Optional[OrgUnit]:
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[OrgUnit]:
        raise NotImplementedError

    def create(self, unit: OrgUnit) -> OrgUnit:
        raise NotImplementedError

    def update(self, unit: OrgUnit) -> OrgUnit:
        raise NotImplementedError

    def delete(self, unit_id: str) -> bool:
        raise NotImplementedError
