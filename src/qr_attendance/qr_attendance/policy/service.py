from __future__ import annotations

import logging
from typing import Any, Mapping

from ..core.enums import Permission
from ..core.exceptions import PolicyMissing
from ..employees.model import Identity
from ..employees.permissions import require_permission
from .model import AttendancePolicy, policy_from_dict, policy_to_dict
from .repository import PolicyRepository

logger = logging.getLogger(__name__)


class PolicyService:
    """Use case: read the current policy snapshot, replace it (admin)."""

    def __init__(self, policies: PolicyRepository):
        self._policies = policies

    def get_current_policy(self) -> AttendancePolicy:
        policy = self._policies.get_current()
        if policy is None:
            raise PolicyMissing("Attendance policy has not been configured")
        return policy

    def set_policy(self, identity: Identity, settings: Mapping[str, Any]) -> AttendancePolicy:
        require_permission(identity, Permission.MANAGE_POLICY)

        policy = policy_from_dict(settings)
        self._policies.save(policy)
        logger.info(
            "Policy updated by employee %s: %s",
            identity.employee_id,
            policy_to_dict(policy),
        )
        return policy
