from __future__ import annotations

import json
from decimal import Decimal
from typing import Optional, Sequence

import mysql.connector

from ..common.datetime_utils import ensure_aware, to_naive_utc
from ..core.exceptions import AlreadyDisbursed
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import PayrollHistory, PayrollPeriod, PayrollRecord
from .repository import PayrollLedger

_COLUMNS = "period_label, period_year, period_month, generated_at, total_net_pay, records_json"


def _row_to_history(r: dict) -> PayrollHistory:
    raw_records = r["records_json"]
    if isinstance(raw_records, (bytes, bytearray)):
        raw_records = raw_records.decode("utf-8")
    return PayrollHistory(
        period=PayrollPeriod(int(r["period_year"]), int(r["period_month"])),
        generated_at=ensure_aware(r["generated_at"]),
        total_net_pay=Decimal(str(r["total_net_pay"])),
        records=tuple(PayrollRecord.from_dict(x) for x in json.loads(raw_records)),
    )


class MySQLPayrollRepository(PayrollLedger):
    """Payroll ledger on MySQL; ``period_label`` is the primary key."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_history(self, period: PayrollPeriod) -> Optional[PayrollHistory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM payroll_history WHERE period_label=%s", (period.label,))
            r = fetchone(cur)
            return _row_to_history(r) if r else None

    def create_history(self, entry: PayrollHistory) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO payroll_history(
                        period_label, period_year, period_month, generated_at, total_net_pay, records_json
                    )
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        entry.period.label,
                        entry.period.year,
                        entry.period.month,
                        to_naive_utc(entry.generated_at),
                        entry.total_net_pay,
                        json.dumps([r.to_dict() for r in entry.records], ensure_ascii=False),
                    ),
                )
        except mysql.connector.Error as e:
            if is_duplicate_key(e):
                raise AlreadyDisbursed(entry.period.label) from e
            raise

    def list_history(self) -> Sequence[PayrollHistory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM payroll_history ORDER BY period_label DESC")
            return [_row_to_history(r) for r in fetchall(cur)]
