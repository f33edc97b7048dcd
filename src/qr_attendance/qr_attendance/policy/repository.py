from __future__ import annotations

from typing import Optional, Protocol

from .model import AttendancePolicy


class PolicyRepository(Protocol):
    """Single-document store for the company attendance policy."""

    def get_current(self) -> Optional[AttendancePolicy]:
        raise NotImplementedError

    def save(self, policy: AttendancePolicy) -> None:
        raise NotImplementedError
