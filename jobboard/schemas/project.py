"""
ART Job Board - Project Schemas

Pydantic schemas for estimate jobs.

estimate_status is canonical; project_status, status and job_board_status
are derived from it on the way out.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from jobboard.models.project import ClientProjectStatus, EstimateStatus, Project
from jobboard.services.status_transition_service import project_status_view


# ===========================================
# REQUEST SCHEMAS
# ===========================================

class ProjectCreateRequest(BaseModel):
    """
    Schema for requesting an estimate.

    Portal users always create for their own client; client_id is
    required for staff.
    """
    name: str = Field(..., min_length=1, max_length=255)
    client_id: Optional[UUID] = None
    address: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None
    posting_date: Optional[date] = None
    plan_type: Optional[str] = Field(None, max_length=50)
    qty: Optional[float] = Field(None, ge=0)


class ProjectUpdateRequest(BaseModel):
    """Schema for updating a project. Status changes use /status."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None
    estimator_id: Optional[UUID] = None
    plan_type: Optional[str] = Field(None, max_length=50)
    qty: Optional[float] = Field(None, ge=0)
    est_qty: Optional[float] = Field(None, ge=0)
    manual_price: Optional[float] = None


class StatusTransitionRequest(BaseModel):
    """Move an estimate to a new status."""
    status: EstimateStatus
    expected_version: Optional[int] = Field(
        None,
        description="Reject the change if the project was modified since this version",
    )


class ClientStatusRequest(BaseModel):
    """Set the client workflow status of a delivered estimate."""
    client_status: ClientProjectStatus


# ===========================================
# RESPONSE SCHEMAS
# ===========================================

class ProjectResponse(BaseModel):
    """Schema for project response."""
    id: UUID
    project_number: str
    name: str
    address: Optional[str] = None
    notes: Optional[str] = None
    client_id: UUID
    estimator_id: Optional[UUID] = None
    posting_date: date
    plan_type: Optional[str] = None
    qty: Optional[float] = None
    est_qty: Optional[float] = None
    manual_price: Optional[float] = None
    estimate_status: EstimateStatus
    client_status: Optional[ClientProjectStatus] = None
    pricing_snapshot: Optional[Dict[str, Any]] = None
    date_completed: Optional[date] = None
    estimate_sent: List[str] = []
    version: int
    created_at: datetime
    updated_at: datetime

    # Derived
    project_status: Optional[str] = None
    status: Optional[str] = None
    job_board_status: Optional[str] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_project(cls, project: Project) -> "ProjectResponse":
        view = project_status_view(project.estimate_status, project.client_status)
        return cls.model_validate(project).model_copy(update={
            "project_status": view["projectStatus"],
            "status": view["status"],
            "job_board_status": view["jobBoardStatus"],
        })


class ProjectListResponse(BaseModel):
    """Schema for paginated project list."""
    items: List[ProjectResponse]
    total: int


class StatusTransitionResponse(BaseModel):
    """Project after a status change."""
    project: ProjectResponse
    requested_status: EstimateStatus
    redirected: bool = False
    email_sent: Optional[bool] = None


class ProjectPricingResponse(BaseModel):
    """Resolved pricing for a project."""
    project_id: UUID
    price_each: Optional[float] = None
    total_price: Optional[float] = None
    loyalty_tier: str
    currency: str
    source: str
    estimator_pay: float
    captured_at: Optional[str] = None
