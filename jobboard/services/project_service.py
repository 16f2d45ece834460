"""
ART Job Board - Project Service

Business logic for estimate jobs: creation, edits, status changes and
pricing. Status rules live in status_transition_service; this service
loads and locks the row, applies the computed updates in one commit and
sends the estimate notification.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from jobboard.models.client import Client
from jobboard.models.project import EstimateStatus, Project
from jobboard.models.user import User, UserRole
from jobboard.services.email_service import EmailService, build_estimate_sent_email
from jobboard.services.pricing_service import get_plan_type
from jobboard.services.pricing_snapshot_service import (
    ProjectPricing,
    capture_pricing_snapshot,
    resolve_project_pricing,
)
from jobboard.services.status_transition_service import (
    ProjectState,
    TransitionResult,
    changed_fields,
    check_estimate_lock,
    compute_client_status_change,
    compute_transition,
)
from jobboard.utils.error_handling import (
    BusinessRuleException,
    ClientNotFoundException,
    ErrorCode,
    NotFoundException,
    ProjectNotFoundException,
    ValidationException,
    VersionConflictException,
)
from jobboard.utils.permissions import Permission, has_permission

logger = logging.getLogger(__name__)


DECIMAL_FIELDS = ("qty", "est_qty", "manual_price")


class ProjectService:
    """Service for project operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # QUERIES
    # ===========================================

    def _scoped(self, query, user: User):
        """Portal users only ever see their own client's projects."""
        if has_permission(user.role, Permission.VIEW_ALL_PROJECTS):
            return query
        return query.where(Project.client_id == user.client_id)

    async def get_projects(
        self,
        user: User,
        client_id: Optional[uuid.UUID] = None,
        estimate_status: Optional[EstimateStatus] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Project], int]:
        """Get projects visible to the user, newest first."""
        query = self._scoped(select(Project), user)

        if client_id:
            query = query.where(Project.client_id == client_id)
        if estimate_status:
            query = query.where(Project.estimate_status == estimate_status)

        count_result = await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar_one()

        query = query.order_by(Project.posting_date.desc(), Project.project_number.desc())
        result = await self.db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all()), total

    async def get_project(
        self,
        project_id: uuid.UUID,
        user: Optional[User] = None,
        for_update: bool = False,
    ) -> Project:
        """Get project with its client loaded."""
        query = (
            select(Project)
            .options(selectinload(Project.client))
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        if user is not None:
            query = self._scoped(query, user)
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        project = result.scalar_one_or_none()
        if not project:
            raise ProjectNotFoundException(project_id)
        return project

    async def _next_project_number(self, posting_date: date) -> str:
        prefix = posting_date.strftime("%y-%m-")
        result = await self.db.execute(
            select(func.count())
            .select_from(Project)
            .where(Project.project_number.like(f"{prefix}%"))
        )
        return f"{prefix}{result.scalar_one() + 1:03d}"

    # ===========================================
    # CREATE / UPDATE
    # ===========================================

    async def create_project(self, user: User, **kwargs) -> Project:
        """
        Create an estimate request.

        Portal users are bound to their own client.
        """
        if user.role == UserRole.USER:
            if not user.client_id:
                raise BusinessRuleException(
                    message="Your account is not linked to a client",
                    rule="USER_REQUIRES_CLIENT",
                )
            kwargs["client_id"] = user.client_id
        elif not kwargs.get("client_id"):
            raise ValidationException("client_id is required", field="client_id")

        client = await self.db.get(Client, kwargs["client_id"])
        if not client:
            raise ClientNotFoundException(kwargs["client_id"])

        if kwargs.get("plan_type"):
            get_plan_type(kwargs["plan_type"])

        posting_date = kwargs.pop("posting_date", None) or date.today()
        values = _decimals(kwargs)

        project = Project(
            project_number=await self._next_project_number(posting_date),
            posting_date=posting_date,
            estimate_status=EstimateStatus.ESTIMATE_REQUESTED,
            estimate_sent=[],
            **values,
        )
        self.db.add(project)
        await self.db.commit()

        logger.info(f"Project {project.project_number} requested for {client.name} by {user.email}")
        return await self.get_project(project.id)

    async def update_project(self, project_id: uuid.UUID, user: User, **kwargs) -> Project:
        """
        Update project details.

        Pricing inputs of a sent estimate are locked for everyone but admins.
        """
        project = await self.get_project(project_id, user, for_update=True)
        values = _decimals(kwargs)

        if values.get("plan_type"):
            get_plan_type(values["plan_type"])
        if values.get("estimator_id"):
            estimator = await self.db.get(User, values["estimator_id"])
            if not estimator or estimator.role == UserRole.USER:
                raise NotFoundException("Estimator", values["estimator_id"], code=ErrorCode.USER_NOT_FOUND)

        changes = changed_fields(project, values)
        check_estimate_lock(ProjectState.from_project(project), user.role, changes)

        for key in changes:
            setattr(project, key, values[key])

        await self._commit(project)
        return await self.get_project(project_id)

    # ===========================================
    # STATUS
    # ===========================================

    async def transition_status(
        self,
        project_id: uuid.UUID,
        user: User,
        target: EstimateStatus,
        expected_version: Optional[int] = None,
        email_service: Optional[EmailService] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[Project, TransitionResult, Optional[bool]]:
        """
        Move an estimate to a new status.

        Returns the reloaded project, the applied transition and whether
        the estimate email went out (None when no email was due).
        """
        now = now or datetime.now(timezone.utc)
        project = await self.get_project(project_id, user, for_update=True)
        if expected_version is not None and project.version != expected_version:
            raise VersionConflictException("Project", project_id)

        client = project.client
        result = compute_transition(
            ProjectState.from_project(project),
            target,
            user.role,
            now,
            client.timezone,
            lambda captured_at: capture_pricing_snapshot(
                project.plan_type,
                project.qty,
                client.loyalty_tier,
                project.manual_price,
                captured_at,
            ),
        )

        previous = project.estimate_status
        for key, value in result.updates.items():
            setattr(project, key, value)
        await self._commit(project)

        logger.info(
            f"Project {project.project_number}: {previous.value} -> {result.estimate_status.value} "
            f"by {user.email} ({user.role.value})"
        )

        email_sent = None
        if result.is_send:
            email_sent = await self._notify_estimate_sent(project, client, email_service)

        return await self.get_project(project_id), result, email_sent

    async def set_client_status(self, project_id: uuid.UUID, user: User, client_status: Any) -> Project:
        """Set the client's own workflow status on a delivered estimate."""
        project = await self.get_project(project_id, user, for_update=True)
        updates = compute_client_status_change(ProjectState.from_project(project), client_status, user.role)

        for key, value in updates.items():
            setattr(project, key, value)
        await self._commit(project)
        return await self.get_project(project_id)

    async def get_pricing(self, project_id: uuid.UUID, user: User, currency: str = "AUD") -> ProjectPricing:
        """Resolved pricing; snapshot for sent estimates, live otherwise."""
        project = await self.get_project(project_id, user)
        return resolve_project_pricing(project, project.client.loyalty_tier, currency)

    # ===========================================
    # HELPERS
    # ===========================================

    async def _commit(self, project: Project) -> None:
        try:
            await self.db.commit()
        except StaleDataError:
            await self.db.rollback()
            raise VersionConflictException("Project", project.id)

    async def _notify_estimate_sent(
        self,
        project: Project,
        client: Client,
        email_service: Optional[EmailService],
    ) -> Optional[bool]:
        if email_service is None:
            return None
        if not client.email:
            logger.warning(f"Client {client.name} has no email; estimate {project.project_number} not emailed")
            return False

        payload = build_estimate_sent_email(
            project_number=project.project_number,
            project_name=project.name,
            client_name=client.name,
            project_id=project.id,
            snapshot=project.pricing_snapshot,
        )
        outcome = await email_service.send(client.email, payload)
        if not outcome.success:
            logger.error(f"Estimate email for {project.project_number} failed: {outcome.error}")
        return outcome.success


def _decimals(values: Dict[str, Any]) -> Dict[str, Any]:
    """Numeric inputs as Decimal so comparisons against stored values are exact."""
    converted = dict(values)
    for key in DECIMAL_FIELDS:
        if converted.get(key) is not None:
            converted[key] = Decimal(str(converted[key]))
    return converted
