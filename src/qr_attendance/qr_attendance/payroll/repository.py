from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import PayrollHistory, PayrollPeriod


class PayrollLedger(Protocol):
    """Append-only store of disbursed payroll snapshots, one per period."""

    def get_history(self, period: PayrollPeriod) -> Optional[PayrollHistory]:
        raise NotImplementedError

    def create_history(self, entry: PayrollHistory) -> None:
        """Atomically create the period's entry; ``AlreadyDisbursed`` if it exists."""

        raise NotImplementedError

    def list_history(self) -> Sequence[PayrollHistory]:
        raise NotImplementedError
