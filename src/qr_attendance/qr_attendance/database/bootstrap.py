from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import mysql.connector
from werkzeug.security import generate_password_hash

from ..policy.model import default_policy, policy_to_dict

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().with_name("schema.sql")


@dataclass(frozen=True)
class DBTarget:
    host: str
    port: int
    user: str
    password: str
    database: str


def _as_target(db_config: dict) -> DBTarget:
    return DBTarget(
        host=str(db_config.get("host", "localhost")),
        port=int(db_config.get("port", 3306)),
        user=str(db_config.get("user", "root")),
        password=str(db_config.get("password", "")),
        database=str(db_config.get("database", "qr_attendance")),
    )


def _connect(target: DBTarget, *, with_database: bool = True):
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_line_comments(sql: str) -> str:
    return re.sub(r"(?m)^\s*--.*$", "", sql)


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema files (handles ';' inside quotes).
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
    target = _as_target(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: Optional[str | Path] = None) -> None:
    """Create the database and tables (idempotent: CREATE ... IF NOT EXISTS)."""

    ensure_database_exists(db_config)
    sql = Path(schema_path or SCHEMA_PATH).read_text(encoding="utf-8")
    sql = _strip_line_comments(_strip_create_db_and_use(sql))

    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("Schema applied to %s", _as_target(db_config).database)


def ensure_default_policy(db_config: dict) -> bool:
    """Store the factory policy unless one is already saved. Returns True if it wrote one."""

    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor()
        cur.execute(
            "INSERT IGNORE INTO app_settings(setting_key, setting_value) VALUES(%s,%s)",
            ("attendance_policy", json.dumps(policy_to_dict(default_policy()))),
        )
        created = cur.rowcount > 0
        conn.commit()
        return created
    finally:
        conn.close()


def ensure_demo_users(db_config: dict) -> None:
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor(dictionary=True)

        def upsert_employee(
            name: str,
            username: str,
            password: str,
            role: str,
            base_salary: int,
            job_title: str,
            department: str,
        ) -> None:
            password_hash = generate_password_hash(password)
            cur.execute("SELECT employee_id FROM employees WHERE username=%s", (username,))
            existing = cur.fetchone()
            if existing:
                cur.execute(
                    """
                    UPDATE employees
                    SET name=%s, password_hash=%s, role=%s, base_salary=%s,
                        job_title=%s, department=%s, is_active=1
                    WHERE username=%s
                    """,
                    (name, password_hash, role, base_salary, job_title, department, username),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO employees (name, username, password_hash, role, base_salary, job_title, department)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    """,
                    (name, username, password_hash, role, base_salary, job_title, department),
                )

        upsert_employee("Admin Demo", "admin", "admin123", "admin", 12000, "HR Director", "HR")
        upsert_employee("Manager Demo", "manager", "manager123", "manager", 9000, "Team Lead", "Operations")
        upsert_employee("Employee Demo", "employee", "employee123", "employee", 6000, "Accountant", "Finance")

        conn.commit()
    finally:
        conn.close()
    logger.info("Demo employees ready (admin / manager / employee)")


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
