"""
ART Job Board - Projects Router

API endpoints for estimate jobs and their status workflow.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.database import get_async_session
from jobboard.dependencies import get_current_active_user, get_email_service, require_permission
from jobboard.models.project import EstimateStatus
from jobboard.models.user import User
from jobboard.schemas.project import (
    ClientStatusRequest,
    ProjectCreateRequest,
    ProjectListResponse,
    ProjectPricingResponse,
    ProjectResponse,
    ProjectUpdateRequest,
    StatusTransitionRequest,
    StatusTransitionResponse,
)
from jobboard.services.email_service import EmailService
from jobboard.services.project_service import ProjectService
from jobboard.utils.permissions import Permission


router = APIRouter()


@router.get(
    "",
    response_model=ProjectListResponse,
    summary="List projects",
    description="Staff see every project; portal users see their own client's projects.",
)
async def list_projects(
    client_id: Optional[UUID] = Query(None),
    estimate_status: Optional[EstimateStatus] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    project_service = ProjectService(db)
    projects, total = await project_service.get_projects(
        current_user,
        client_id=client_id,
        estimate_status=estimate_status,
        skip=skip,
        limit=limit,
    )
    return ProjectListResponse(
        items=[ProjectResponse.from_project(p) for p in projects],
        total=total,
    )


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request an estimate",
)
async def create_project(
    request: ProjectCreateRequest,
    current_user: User = Depends(require_permission(Permission.CREATE_PROJECTS)),
    db: AsyncSession = Depends(get_async_session),
):
    project_service = ProjectService(db)
    project = await project_service.create_project(current_user, **request.model_dump())
    return ProjectResponse.from_project(project)


@router.get(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Get project",
)
async def get_project(
    project_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    project_service = ProjectService(db)
    project = await project_service.get_project(project_id, current_user)
    return ProjectResponse.from_project(project)


@router.patch(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Update project",
    description="Plan type, quantities and manual price are locked once an estimate is Sent (admins excepted).",
)
async def update_project(
    project_id: UUID,
    request: ProjectUpdateRequest,
    current_user: User = Depends(require_permission(Permission.EDIT_PROJECTS)),
    db: AsyncSession = Depends(get_async_session),
):
    project_service = ProjectService(db)
    project = await project_service.update_project(
        project_id,
        current_user,
        **request.model_dump(exclude_unset=True),
    )
    return ProjectResponse.from_project(project)


@router.post(
    "/{project_id}/status",
    response_model=StatusTransitionResponse,
    summary="Change estimate status",
    description=(
        "Move the estimate to a new status. Sending captures the pricing snapshot "
        "and emails the client; any other status clears the snapshot."
    ),
)
async def change_status(
    project_id: UUID,
    request: StatusTransitionRequest,
    current_user: User = Depends(get_current_active_user),
    email_service: EmailService = Depends(get_email_service),
    db: AsyncSession = Depends(get_async_session),
):
    project_service = ProjectService(db)
    project, result, email_sent = await project_service.transition_status(
        project_id,
        current_user,
        request.status,
        expected_version=request.expected_version,
        email_service=email_service,
    )
    return StatusTransitionResponse(
        project=ProjectResponse.from_project(project),
        requested_status=result.requested_status,
        redirected=result.redirected,
        email_sent=email_sent,
    )


@router.post(
    "/{project_id}/client-status",
    response_model=ProjectResponse,
    summary="Set client workflow status",
)
async def change_client_status(
    project_id: UUID,
    request: ClientStatusRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    project_service = ProjectService(db)
    project = await project_service.set_client_status(project_id, current_user, request.client_status)
    return ProjectResponse.from_project(project)


@router.get(
    "/{project_id}/pricing",
    response_model=ProjectPricingResponse,
    summary="Get project pricing",
    description="Sent estimates are priced from their snapshot; others from the client's current tier.",
)
async def get_project_pricing(
    project_id: UUID,
    currency: str = Query("AUD", min_length=3, max_length=3),
    current_user: User = Depends(require_permission(Permission.VIEW_PRICING)),
    db: AsyncSession = Depends(get_async_session),
):
    project_service = ProjectService(db)
    pricing = await project_service.get_pricing(project_id, current_user, currency)
    return ProjectPricingResponse(
        project_id=project_id,
        price_each=pricing.price_each,
        total_price=pricing.total_price,
        loyalty_tier=pricing.loyalty_tier,
        currency=pricing.currency,
        source=pricing.source,
        estimator_pay=pricing.estimator_pay,
        captured_at=pricing.captured_at,
    )
