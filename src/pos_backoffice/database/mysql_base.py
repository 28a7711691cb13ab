from __future__ import annotations

import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def new_id() -> str:
    return str(uuid.uuid4())


def dec(value: Any) -> Decimal:
    """DECIMAL columns may come back as Decimal, float, int or None."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped.lower()}%"


@dataclass
class WhereBuilder:
    """Collects ``AND``-joined SQL conditions with their parameters."""

    clauses: List[str] = field(default_factory=list)
    params: List[Any] = field(default_factory=list)

    def add(self, clause: str, *params: Any) -> "WhereBuilder":
        self.clauses.append(clause)
        self.params.extend(params)
        return self

    def add_search(self, columns: Sequence[str], term: Optional[str]) -> "WhereBuilder":
        """Case-insensitive substring match over any of ``columns``."""
        term = (term or "").strip()
        if not term:
            return self
        pattern = like(term)
        self.clauses.append("(" + " OR ".join(f"LOWER({c}) LIKE %s" for c in columns) + ")")
        self.params.extend([pattern] * len(columns))
        return self

    def sql(self) -> str:
        if not self.clauses:
            return ""
        return "WHERE " + " AND ".join(self.clauses)

    def args(self) -> Tuple[Any, ...]:
        return tuple(self.params)
