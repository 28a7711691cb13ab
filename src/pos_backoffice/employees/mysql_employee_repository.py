from __future__ import annotations

from typing import Optional, Sequence

from ..common.pagination import Page, PageRequest
from ..core.enums import EmployeeStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import WhereBuilder, db_cursor, dec, fetchall, fetchone
from .model import Employee, EmployeeFilter, OrgUnit
from .repository import EmployeeRepository, OrgUnitRepository

_COLUMNS = (
    "id, employee_id, name, position, department, branch_id, email, phone, "
    "joining_date, salary, photo_url, status, created_at"
)

_SEARCH_COLUMNS = ("name", "employee_id", "position", "department", "email", "phone")


def _row_to_employee(row: dict) -> Employee:
    return Employee(
        id=row["id"],
        employee_id=row["employee_id"],
        name=row["name"],
        position=row["position"],
        department=row["department"],
        branch_id=row.get("branch_id"),
        email=row.get("email"),
        phone=row.get("phone"),
        joining_date=row["joining_date"],
        salary=dec(row.get("salary")),
        photo_url=row.get("photo_url"),
        status=EmployeeStatus(row.get("status") or "active"),
        created_at=row.get("created_at"),
    )


def build_employee_where(criteria: EmployeeFilter) -> WhereBuilder:
    where = WhereBuilder()
    if criteria.branch_id:
        where.add("branch_id=%s", criteria.branch_id)
    if criteria.status:
        where.add("status=%s", criteria.status.value)
    if criteria.position:
        where.add("position=%s", criteria.position)
    if criteria.department:
        where.add("department=%s", criteria.department)
    if criteria.joined and criteria.joined.start:
        where.add("joining_date>=%s", criteria.joined.start.date())
    if criteria.joined and criteria.joined.end:
        where.add("joining_date<=%s", criteria.joined.end.date())
    where.add_search(_SEARCH_COLUMNS, criteria.search)
    return where


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self, *, branch_id: Optional[str] = None) -> Sequence[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            if branch_id:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM employees WHERE branch_id=%s ORDER BY created_at DESC",
                    (branch_id,),
                )
            else:
                cur.execute(f"SELECT {_COLUMNS} FROM employees ORDER BY created_at DESC")
            return [_row_to_employee(r) for r in fetchall(cur)]

    def list_paginated(self, criteria: EmployeeFilter, page: PageRequest) -> Page[Employee]:
        where = build_employee_where(criteria)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM employees {where.sql()}", where.args())
            total = int((fetchone(cur) or {}).get("total") or 0)
            cur.execute(
                f"SELECT {_COLUMNS} FROM employees {where.sql()} ORDER BY created_at DESC LIMIT %s OFFSET %s",
                where.args() + (page.limit, page.offset),
            )
            items = [_row_to_employee(r) for r in fetchall(cur)]
        return Page(items=items, total=total, limit=page.limit, offset=page.offset)

    def get_by_id(self, employee_pk: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE id=%s", (employee_pk,))
            row = fetchone(cur)
            return _row_to_employee(row) if row else None

    def get_by_employee_id(self, employee_id: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE employee_id=%s", (employee_id,))
            row = fetchone(cur)
            return _row_to_employee(row) if row else None

    def list_employee_ids(self) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT employee_id FROM employees")
            return [r["employee_id"] for r in fetchall(cur)]

    def create(self, employee: Employee) -> Employee:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO employees
                    (id, employee_id, name, position, department, branch_id, email, phone,
                     joining_date, salary, photo_url, status)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    employee.id,
                    employee.employee_id,
                    employee.name,
                    employee.position,
                    employee.department,
                    employee.branch_id,
                    employee.email,
                    employee.phone,
                    employee.joining_date,
                    employee.salary,
                    employee.photo_url,
                    employee.status.value,
                ),
            )
        return self.get_by_id(employee.id) or employee

    def update(self, employee: Employee) -> Employee:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE employees
                SET employee_id=%s, name=%s, position=%s, department=%s, branch_id=%s, email=%s,
                    phone=%s, joining_date=%s, salary=%s, photo_url=%s, status=%s
                WHERE id=%s
                """,
                (
                    employee.employee_id,
                    employee.name,
                    employee.position,
                    employee.department,
                    employee.branch_id,
                    employee.email,
                    employee.phone,
                    employee.joining_date,
                    employee.salary,
                    employee.photo_url,
                    employee.status.value,
                    employee.id,
                ),
            )
        return self.get_by_id(employee.id) or employee

    def delete(self, employee_pk: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM employees WHERE id=%s", (employee_pk,))
            return cur.rowcount > 0


class MySQLOrgUnitRepository(OrgUnitRepository):
    """Backs both ``positions`` and ``departments``."""

    TABLES = ("positions", "departments")

    def __init__(self, conn_factory: DatabaseConnection, table: str):
        if table not in self.TABLES:
            raise ValueError(f"Unsupported table: {table}")
        self._conn_factory = conn_factory
        self._table = table

    def _one(self, where: str, value: str) -> Optional[OrgUnit]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT id, name, description FROM {self._table} WHERE {where}=%s", (value,))
            row = fetchone(cur)
            return OrgUnit(id=row["id"], name=row["name"], description=row.get("description")) if row else None

    def list_all(self) -> Sequence[OrgUnit]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT id, name, description FROM {self._table} ORDER BY name")
            return [OrgUnit(id=r["id"], name=r["name"], description=r.get("description")) for r in fetchall(cur)]

    def get_by_id(self, unit_id: str) -> Optional[OrgUnit]:
        return self._one("id", unit_id)

    def get_by_name(self, name: str) -> Optional[OrgUnit]:
        return self._one("name", name)

    def create(self, unit: OrgUnit) -> OrgUnit:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO {self._table} (id, name, description) VALUES (%s, %s, %s)",
                (unit.id, unit.name, unit.description),
            )
        return unit

    def update(self, unit: OrgUnit) -> OrgUnit:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE {self._table} SET name=%s, description=%s WHERE id=%s",
                (unit.name, unit.description, unit.id),
            )
        return unit

    def delete(self, unit_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"DELETE FROM {self._table} WHERE id=%s", (unit_id,))
            return cur.rowcount > 0
