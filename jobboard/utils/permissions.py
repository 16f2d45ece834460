"""
ART Job Board - Permissions System

Role-based permissions for the job board.

Permission Matrix:
==================

| Permission                | Admin | Estimator | User |
|---------------------------|-------|-----------|------|
| view_all_projects         | X     | X         |      |
| create_projects           | X     |           | X    |
| edit_projects             | X     | X         |      |
| edit_locked_estimates     | X     |           |      |
| send_estimates            | X     |           |      |
| set_client_status         | X     |           | X    |
| manage_clients            | X     |           |      |
| view_clients              | X     | X         |      |
| manage_loyalty            | X     |           |      |
| view_pricing              | X     | X         | X    |

Estimate status targets by role:
- Admin: every status
- Estimator: internal working statuses; "Estimate Completed" is
  redirected to "Awaiting Review"
- User: "Estimate Requested" (re-request) and "Cancelled"
"""

from enum import Enum
from typing import FrozenSet, Set

from jobboard.models.project import EstimateStatus
from jobboard.models.user import UserRole


class Permission(str, Enum):
    """Job board permissions."""

    # Projects
    VIEW_ALL_PROJECTS = "view_all_projects"
    CREATE_PROJECTS = "create_projects"
    EDIT_PROJECTS = "edit_projects"
    EDIT_LOCKED_ESTIMATES = "edit_locked_estimates"
    SEND_ESTIMATES = "send_estimates"
    SET_CLIENT_STATUS = "set_client_status"

    # Clients
    MANAGE_CLIENTS = "manage_clients"
    VIEW_CLIENTS = "view_clients"
    MANAGE_LOYALTY = "manage_loyalty"

    # Pricing
    VIEW_PRICING = "view_pricing"


# ===========================================
# PERMISSION MAPPINGS
# ===========================================

ROLE_PERMISSIONS: dict[UserRole, Set[Permission]] = {
    UserRole.ADMIN: set(Permission),
    UserRole.ESTIMATOR: {
        Permission.VIEW_ALL_PROJECTS,
        Permission.EDIT_PROJECTS,
        Permission.VIEW_CLIENTS,
        Permission.VIEW_PRICING,
    },
    UserRole.USER: {
        Permission.CREATE_PROJECTS,
        Permission.SET_CLIENT_STATUS,
        Permission.VIEW_PRICING,
    },
}


ESTIMATE_STATUS_TARGETS: dict[UserRole, FrozenSet[EstimateStatus]] = {
    UserRole.ADMIN: frozenset(EstimateStatus),
    UserRole.ESTIMATOR: frozenset({
        EstimateStatus.ASSIGNED,
        EstimateStatus.IN_PROGRESS,
        EstimateStatus.RFI,
        EstimateStatus.SMALL_FIX,
        EstimateStatus.HOLD,
        EstimateStatus.AWAITING_REVIEW,
        EstimateStatus.ESTIMATE_COMPLETED,
    }),
    UserRole.USER: frozenset({
        EstimateStatus.ESTIMATE_REQUESTED,
        EstimateStatus.CANCELLED,
    }),
}


# ===========================================
# PERMISSION HELPER FUNCTIONS
# ===========================================

def get_permissions(role: UserRole) -> Set[Permission]:
    """Get all permissions for a role."""
    return ROLE_PERMISSIONS.get(role, set())


def has_permission(role: UserRole, permission: Permission) -> bool:
    """Check if a role has a specific permission."""
    return permission in get_permissions(role)


def can_set_estimate_status(role: UserRole, target: EstimateStatus) -> bool:
    """Check if a role may move an estimate to the target status."""
    return target in ESTIMATE_STATUS_TARGETS.get(role, frozenset())
