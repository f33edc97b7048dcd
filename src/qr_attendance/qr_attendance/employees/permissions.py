from __future__ import annotations

from ..core.enums import Permission, Role
from ..core.exceptions import AuthorizationError
from .model import Identity

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.EMPLOYEE: frozenset({Permission.SCAN, Permission.VIEW_OWN_ATTENDANCE}),
    Role.MANAGER: frozenset(
        {
            Permission.SCAN,
            Permission.VIEW_OWN_ATTENDANCE,
            Permission.VIEW_ATTENDANCE,
            Permission.MARK_ATTENDANCE,
            Permission.ISSUE_QR,
            Permission.RUN_PAYROLL,
            Permission.VIEW_PAYROLL_HISTORY,
        }
    ),
    Role.ADMIN: frozenset(Permission),
}


def permissions_for(identity: Identity) -> frozenset[Permission]:
    return ROLE_PERMISSIONS.get(identity.role, frozenset())


def can(identity: Identity, permission: Permission) -> bool:
    return permission in permissions_for(identity)


def require_permission(identity: Identity, permission: Permission) -> None:
    if not can(identity, permission):
        raise AuthorizationError("You do not have permission for this action")
