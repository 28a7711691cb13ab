from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional, Sequence

from ..core.enums import LedgerKind, LedgerStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import WhereBuilder, db_cursor, dec, fetchall, fetchone
from .model import LedgerEntry, StaffSalary
from .repository import LedgerRepository, SalaryRepository

_SALARY_COLUMNS = (
    "id, employee_id, salary_date, salary_amount, deduct_salary, total_salary, "
    "carried_unreleased, note, created_at"
)
_LEDGER_COLUMNS = "id, employee_id, kind, amount, entry_date, note, status, settled_salary_id, created_at"


def _placeholders(values: Sequence) -> str:
    return ", ".join(["%s"] * len(values))


def _row_to_salary(row: dict) -> StaffSalary:
    return StaffSalary(
        id=row["id"],
        employee_id=row["employee_id"],
        salary_date=row["salary_date"],
        salary_amount=dec(row.get("salary_amount")),
        deduct_salary=dec(row.get("deduct_salary")),
        total_salary=dec(row.get("total_salary")),
        carried_unreleased=dec(row.get("carried_unreleased")),
        note=row.get("note"),
        created_at=row.get("created_at"),
    )


def _row_to_entry(row: dict) -> LedgerEntry:
    return LedgerEntry(
        id=row["id"],
        employee_id=row["employee_id"],
        kind=LedgerKind(row["kind"]),
        amount=dec(row.get("amount")),
        entry_date=row["entry_date"],
        status=LedgerStatus(row.get("status") or "pending"),
        note=row.get("note"),
        settled_salary_id=row.get("settled_salary_id"),
        created_at=row.get("created_at"),
    )


class MySQLSalaryRepository(SalaryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_in_range(
        self,
        *,
        start: Optional[datetime],
        end: Optional[datetime],
        employee_ids: Optional[Iterable[str]] = None,
    ) -> Sequence[StaffSalary]:
        where = WhereBuilder()
        if start:
            where.add("salary_date>=%s", start)
        if end:
            where.add("salary_date<=%s", end)
        if employee_ids is not None:
            ids = list(employee_ids)
            if not ids:
                return []
            where.add(f"employee_id IN ({_placeholders(ids)})", *ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SALARY_COLUMNS} FROM staff_salaries {where.sql()} ORDER BY salary_date DESC",
                where.args(),
            )
            return [_row_to_salary(r) for r in fetchall(cur)]

    def latest_by_employee(self, employee_ids: Iterable[str]) -> Dict[str, StaffSalary]:
        ids = list(employee_ids)
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SALARY_COLUMNS}
                FROM staff_salaries
                WHERE employee_id IN ({_placeholders(ids)})
                ORDER BY employee_id, salary_date DESC, created_at DESC
                """,
                tuple(ids),
            )
            latest: Dict[str, StaffSalary] = {}
            for row in fetchall(cur):
                latest.setdefault(row["employee_id"], _row_to_salary(row))
            return latest

    def get_by_id(self, salary_id: str) -> Optional[StaffSalary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SALARY_COLUMNS} FROM staff_salaries WHERE id=%s", (salary_id,))
            row = fetchone(cur)
            return _row_to_salary(row) if row else None

    def create(self, salary: StaffSalary, *, settle_entry_ids: Sequence[str] = ()) -> StaffSalary:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO staff_salaries
                    (id, employee_id, salary_date, salary_amount, deduct_salary, total_salary,
                     carried_unreleased, note)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    salary.id,
                    salary.employee_id,
                    salary.salary_date,
                    salary.salary_amount,
                    salary.deduct_salary,
                    salary.total_salary,
                    salary.carried_unreleased,
                    salary.note,
                ),
            )
            if settle_entry_ids:
                ids = list(settle_entry_ids)
                cur.execute(
                    f"""
                    UPDATE staff_ledger
                    SET status=%s, settled_salary_id=%s
                    WHERE status=%s AND id IN ({_placeholders(ids)})
                    """,
                    (LedgerStatus.SETTLED.value, salary.id, LedgerStatus.PENDING.value, *ids),
                )
        return salary

    def update(self, salary: StaffSalary) -> StaffSalary:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE staff_salaries
                SET salary_date=%s, salary_amount=%s, deduct_salary=%s, total_salary=%s, note=%s
                WHERE id=%s
                """,
                (
                    salary.salary_date,
                    salary.salary_amount,
                    salary.deduct_salary,
                    salary.total_salary,
                    salary.note,
                    salary.id,
                ),
            )
        return salary

    def delete(self, salary_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # entries settled by this release become payable again
            cur.execute(
                "UPDATE staff_ledger SET status=%s, settled_salary_id=NULL WHERE settled_salary_id=%s",
                (LedgerStatus.PENDING.value, salary_id),
            )
            cur.execute("DELETE FROM staff_salaries WHERE id=%s", (salary_id,))
            return cur.rowcount > 0


class MySQLLedgerRepository(LedgerRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_entries(
        self,
        *,
        kind: Optional[LedgerKind] = None,
        status: Optional[LedgerStatus] = None,
        employee_ids: Optional[Iterable[str]] = None,
    ) -> Sequence[LedgerEntry]:
        where = WhereBuilder()
        if kind:
            where.add("kind=%s", kind.value)
        if status:
            where.add("status=%s", status.value)
        if employee_ids is not None:
            ids = list(employee_ids)
            if not ids:
                return []
            where.add(f"employee_id IN ({_placeholders(ids)})", *ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_LEDGER_COLUMNS} FROM staff_ledger {where.sql()} ORDER BY entry_date DESC, created_at DESC",
                where.args(),
            )
            return [_row_to_entry(r) for r in fetchall(cur)]

    def pending_totals(self, employee_ids: Iterable[str]) -> Dict[str, Dict[LedgerKind, Decimal]]:
        ids = list(employee_ids)
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT employee_id, kind, COALESCE(SUM(amount), 0) AS total
                FROM staff_ledger
                WHERE status=%s AND employee_id IN ({_placeholders(ids)})
                GROUP BY employee_id, kind
                """,
                (LedgerStatus.PENDING.value, *ids),
            )
            totals: Dict[str, Dict[LedgerKind, Decimal]] = defaultdict(dict)
            for row in fetchall(cur):
                totals[row["employee_id"]][LedgerKind(row["kind"])] = dec(row["total"])
            return dict(totals)

    def get_by_id(self, entry_id: str) -> Optional[LedgerEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_LEDGER_COLUMNS} FROM staff_ledger WHERE id=%s", (entry_id,))
            row = fetchone(cur)
            return _row_to_entry(row) if row else None

    def create(self, entry: LedgerEntry) -> LedgerEntry:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO staff_ledger (id, employee_id, kind, amount, entry_date, note, status)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    entry.id,
                    entry.employee_id,
                    entry.kind.value,
                    entry.amount,
                    entry.entry_date,
                    entry.note,
                    entry.status.value,
                ),
            )
        return entry

    def update(self, entry: LedgerEntry) -> LedgerEntry:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE staff_ledger SET amount=%s, entry_date=%s, note=%s WHERE id=%s",
                (entry.amount, entry.entry_date, entry.note, entry.id),
            )
        return entry

    def delete(self, entry_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM staff_ledger WHERE id=%s", (entry_id,))
            return cur.rowcount > 0
