from __future__ import annotations

import json
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import AttendancePolicy, policy_from_dict, policy_to_dict
from .repository import PolicyRepository

_POLICY_KEY = "attendance_policy"


class MySQLPolicyRepository(PolicyRepository):
    """Stores the settings document as JSON in ``app_settings``."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_current(self) -> Optional[AttendancePolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT setting_value FROM app_settings WHERE setting_key=%s",
                (_POLICY_KEY,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return policy_from_dict(json.loads(r["setting_value"]))

    def save(self, policy: AttendancePolicy) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO app_settings(setting_key, setting_value)
                VALUES(%s,%s)
                ON DUPLICATE KEY UPDATE setting_value=VALUES(setting_value)
                """,
                (_POLICY_KEY, json.dumps(policy_to_dict(policy))),
            )
