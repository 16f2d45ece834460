"""
ART Job Board - Status Transition Service

Estimate status state machine.

compute_transition() is a pure function: given the current project state,
the requested status and the caller's role it returns the complete set of
field updates, which the caller applies in a single write.

| To                 | Side effects                                          |
|--------------------|-------------------------------------------------------|
| Sent               | append estimate_sent timestamp, set date_completed to |
|                    | the client-local date, capture pricing snapshot       |
| Estimate Completed | clear date_completed, clear pricing snapshot          |
| Cancelled          | clear date_completed, clear pricing snapshot          |
| anything else      | clear date_completed, clear pricing snapshot          |

An estimator asking for "Estimate Completed" is redirected to
"Awaiting Review". estimate_sent is never shortened.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from jobboard.config import settings
from jobboard.models.project import ClientProjectStatus, EstimateStatus, Project
from jobboard.models.user import UserRole
from jobboard.utils.error_handling import (
    BusinessRuleException,
    ErrorCode,
    EstimateLockedException,
    InsufficientPermissionsException,
    TransitionForbiddenException,
    ValidationException,
)
from jobboard.utils.permissions import Permission, can_set_estimate_status, has_permission

logger = logging.getLogger(__name__)


# Pricing inputs frozen while an estimate is Sent
LOCKED_FIELDS = frozenset({"plan_type", "qty", "est_qty", "manual_price"})

# Estimate states in which the client drives their own workflow
CLIENT_WORKFLOW_STATES = frozenset({
    EstimateStatus.SENT,
    EstimateStatus.ESTIMATE_COMPLETED,
    EstimateStatus.CANCELLED,
})

COMPLETED_LABEL = EstimateStatus.ESTIMATE_COMPLETED.value
CLIENT_STATUS_PREFIX = "ART: "

SnapshotFactory = Callable[[datetime], Dict[str, Any]]


@dataclass(frozen=True)
class ProjectState:
    """Status-relevant fields of a project."""
    estimate_status: EstimateStatus
    pricing_snapshot: Optional[Dict[str, Any]] = None
    estimate_sent: tuple = ()
    date_completed: Optional[date] = None
    client_status: Optional[ClientProjectStatus] = None

    @classmethod
    def from_project(cls, project: Project) -> "ProjectState":
        return cls(
            estimate_status=project.estimate_status,
            pricing_snapshot=project.pricing_snapshot,
            estimate_sent=tuple(project.estimate_sent or ()),
            date_completed=project.date_completed,
            client_status=project.client_status,
        )


@dataclass
class TransitionResult:
    """Field updates produced by a transition."""
    requested_status: EstimateStatus
    estimate_status: EstimateStatus
    updates: Dict[str, Any] = field(default_factory=dict)
    redirected: bool = False

    @property
    def is_send(self) -> bool:
        return self.estimate_status == EstimateStatus.SENT


def _as_status(value: Union[EstimateStatus, str]) -> EstimateStatus:
    if isinstance(value, EstimateStatus):
        return value
    try:
        return EstimateStatus(value)
    except ValueError:
        raise ValidationException(
            message=f"Unknown estimate status: {value}",
            field="status",
            code=ErrorCode.INVALID_STATUS,
            details={"allowed": [s.value for s in EstimateStatus]},
        )


def client_local_date(now: datetime, timezone_name: Optional[str]) -> date:
    """Calendar date in the client's timezone."""
    name = timezone_name or settings.default_client_timezone
    try:
        zone = ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown client timezone '{name}', using {settings.default_client_timezone}")
        zone = ZoneInfo(settings.default_client_timezone)
    return now.astimezone(zone).date()


def compute_transition(
    state: ProjectState,
    target: Union[EstimateStatus, str],
    role: UserRole,
    now: datetime,
    client_timezone: Optional[str],
    snapshot_factory: SnapshotFactory,
) -> TransitionResult:
    """
    Compute the field updates for an estimate status change.

    Raises:
        ValidationException: unknown status
        TransitionForbiddenException: role may not set the status
    """
    requested = _as_status(target)
    if not can_set_estimate_status(role, requested):
        raise TransitionForbiddenException(role.value, state.estimate_status.value, requested.value)

    applied = requested
    redirected = False
    if role == UserRole.ESTIMATOR and requested == EstimateStatus.ESTIMATE_COMPLETED:
        applied = EstimateStatus.AWAITING_REVIEW
        redirected = True

    updates: Dict[str, Any] = {"estimate_status": applied, "client_status": None}

    if applied == EstimateStatus.SENT:
        updates["estimate_sent"] = list(state.estimate_sent) + [now.isoformat()]
        updates["date_completed"] = client_local_date(now, client_timezone)
        if state.estimate_status == EstimateStatus.SENT and state.pricing_snapshot:
            # Re-send keeps the original frozen pricing
            updates["pricing_snapshot"] = state.pricing_snapshot
        else:
            updates["pricing_snapshot"] = snapshot_factory(now)
    else:
        updates["date_completed"] = None
        updates["pricing_snapshot"] = None

    return TransitionResult(
        requested_status=requested,
        estimate_status=applied,
        updates=updates,
        redirected=redirected,
    )


def check_estimate_lock(state: ProjectState, role: UserRole, changed_fields: Iterable[str]) -> None:
    """Reject pricing edits on a sent estimate for everyone but admins."""
    if state.estimate_status != EstimateStatus.SENT:
        return
    if has_permission(role, Permission.EDIT_LOCKED_ESTIMATES):
        return
    locked = LOCKED_FIELDS.intersection(changed_fields)
    if locked:
        raise EstimateLockedException(list(locked))


def compute_client_status_change(
    state: ProjectState,
    target: Union[ClientProjectStatus, str],
    role: UserRole,
) -> Dict[str, Any]:
    """Field updates for a client workflow status change."""
    if not has_permission(role, Permission.SET_CLIENT_STATUS):
        raise InsufficientPermissionsException(Permission.SET_CLIENT_STATUS.value, role.value)

    try:
        status = target if isinstance(target, ClientProjectStatus) else ClientProjectStatus(target)
    except ValueError:
        raise ValidationException(
            message=f"Unknown client status: {target}",
            field="client_status",
            code=ErrorCode.INVALID_STATUS,
            details={"allowed": [s.value for s in ClientProjectStatus]},
        )

    if state.estimate_status not in CLIENT_WORKFLOW_STATES:
        raise BusinessRuleException(
            message=f"Client status is locked while the estimate is '{state.estimate_status.value}'",
            rule="ESTIMATE_IN_PROGRESS",
            code=ErrorCode.CANNOT_MODIFY,
        )
    return {"client_status": status}


def project_status_view(
    estimate_status: EstimateStatus,
    client_status: Optional[ClientProjectStatus] = None,
) -> Dict[str, str]:
    """
    Derived status fields for serialization.

    projectStatus is what the client sees; status and jobBoardStatus are
    kept for older consumers.
    """
    if estimate_status in (EstimateStatus.SENT, EstimateStatus.ESTIMATE_COMPLETED):
        project_status = client_status.value if client_status else COMPLETED_LABEL
        legacy = COMPLETED_LABEL
    elif estimate_status == EstimateStatus.CANCELLED:
        project_status = client_status.value if client_status else EstimateStatus.CANCELLED.value
        legacy = EstimateStatus.CANCELLED.value
    elif estimate_status == EstimateStatus.ESTIMATE_REQUESTED:
        project_status = estimate_status.value
        legacy = estimate_status.value
    else:
        project_status = f"{CLIENT_STATUS_PREFIX}{estimate_status.value}"
        legacy = estimate_status.value

    return {
        "estimateStatus": estimate_status.value,
        "projectStatus": project_status,
        "status": legacy,
        "jobBoardStatus": legacy,
    }


def changed_fields(project: Project, changes: Dict[str, Any]) -> List[str]:
    """Names of fields whose value would actually change."""
    return [name for name, value in changes.items() if getattr(project, name) != value]
