from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Branch, User
from .repository import BranchRepository, UserRepository

_USER_COLUMNS = "id, username, password_hash, full_name, role, branch_id, is_active"
_BRANCH_COLUMNS = "id, name, location, username, password_hash, is_active"


def _row_to_user(row: dict) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        password_hash=row["password_hash"],
        full_name=row["full_name"],
        role=Role(row["role"]),
        branch_id=row.get("branch_id"),
        is_active=bool(row.get("is_active", True)),
    )


def _row_to_branch(row: dict) -> Branch:
    return Branch(
        id=row["id"],
        name=row["name"],
        location=row.get("location"),
        username=row["username"],
        password_hash=row["password_hash"],
        is_active=bool(row.get("is_active", True)),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id=%s", (user_id,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_username(self, username: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE username=%s", (username,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None


class MySQLBranchRepository(BranchRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, branch_id: str) -> Optional[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_BRANCH_COLUMNS} FROM branches WHERE id=%s", (branch_id,))
            row = fetchone(cur)
            return _row_to_branch(row) if row else None

    def get_by_username(self, username: str) -> Optional[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_BRANCH_COLUMNS} FROM branches WHERE username=%s", (username,))
            row = fetchone(cur)
            return _row_to_branch(row) if row else None

    def list_all(self) -> Sequence[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_BRANCH_COLUMNS} FROM branches ORDER BY name")
            return [_row_to_branch(r) for r in fetchall(cur)]
