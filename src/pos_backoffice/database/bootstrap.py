from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

from .connection import DBConfig

logger = logging.getLogger(__name__)


def _connect(target: DBConfig, *, with_database: bool = True):
    kwargs = dict(
        host=target.host,
        port=target.port,
        user=target.user,
        password=target.password,
        use_pure=True,
    )
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _strip_create_db_and_use(sql: str) -> str:
    # schema.sql must work regardless of the configured database name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_comments(sql: str) -> str:
    return "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))


def iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ';' outside of quoted strings."""
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    sql = _strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8"))

    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor()
        count = 0
        for stmt in iter_sql_statements(_strip_comments(sql)):
            cur.execute(stmt)
            count += 1
        conn.commit()
        logger.info("Applied schema from %s (%d statements)", schema_path, count)
    finally:
        conn.close()


def ensure_demo_users(db_config: dict) -> None:
    """Create (or reset) the demo admin login and a demo branch login."""
    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor(dictionary=True)

        cur.execute("SELECT id FROM branches WHERE username=%s", ("main-branch",))
        branch = cur.fetchone()
        if branch:
            branch_id = branch["id"]
            cur.execute(
                "UPDATE branches SET password_hash=%s, is_active=1 WHERE id=%s",
                (generate_password_hash("branch123"), branch_id),
            )
        else:
            branch_id = str(uuid.uuid4())
            cur.execute(
                """
                INSERT INTO branches (id, name, location, username, password_hash)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (branch_id, "Main Branch", None, "main-branch", generate_password_hash("branch123")),
            )

        cur.execute("SELECT id FROM users WHERE username=%s", ("admin",))
        if cur.fetchone():
            cur.execute(
                "UPDATE users SET password_hash=%s, role='admin', is_active=1 WHERE username=%s",
                (generate_password_hash("admin123"), "admin"),
            )
        else:
            cur.execute(
                """
                INSERT INTO users (id, username, password_hash, full_name, role)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (str(uuid.uuid4()), "admin", generate_password_hash("admin123"), "Admin Demo", "admin"),
            )

        conn.commit()
        logger.info("Demo accounts ready")
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
