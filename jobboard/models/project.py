"""
ART Job Board - Project Model

A project is one estimate job on the board.

estimate_status is the single canonical status. The client-facing
project status and the legacy status/jobBoardStatus fields are derived
from it when the project is serialized.
"""

import uuid
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Date,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from jobboard.models.base import BaseModel

if TYPE_CHECKING:
    from jobboard.models.client import Client
    from jobboard.models.user import User


class EstimateStatus(str, Enum):
    """Internal estimate workflow status."""
    ESTIMATE_REQUESTED = "Estimate Requested"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    RFI = "RFI"
    SMALL_FIX = "Small Fix"
    HOLD = "HOLD"
    AWAITING_REVIEW = "Awaiting Review"
    ESTIMATE_COMPLETED = "Estimate Completed"
    SENT = "Sent"
    CANCELLED = "Cancelled"


class ClientProjectStatus(str, Enum):
    """Client-managed workflow once an estimate has been delivered."""
    NEW_LEAD = "New Lead"
    QUOTE_SENT = "Quote Sent"
    APPROVED = "Approved"
    PROJECT_ACTIVE = "Project Active"
    COMPLETED = "Completed"
    JOB_LOST = "Job lost"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Project(BaseModel):
    """Estimate job model."""

    __tablename__ = "projects"

    project_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    estimator_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    posting_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Pricing inputs
    plan_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    qty: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    est_qty: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2),
        nullable=True,
        comment="Estimator-billable quantity",
    )
    manual_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2),
        nullable=True,
        comment="Per-unit AUD price for the Manual Price plan type",
    )

    # Status
    estimate_status: Mapped[EstimateStatus] = mapped_column(
        SQLEnum(EstimateStatus, values_callable=_enum_values, name="estimate_status", create_constraint=True),
        default=EstimateStatus.ESTIMATE_REQUESTED,
        nullable=False,
        index=True,
    )
    client_status: Mapped[Optional[ClientProjectStatus]] = mapped_column(
        SQLEnum(ClientProjectStatus, values_callable=_enum_values, name="client_project_status", create_constraint=True),
        nullable=True,
    )

    # Set when the estimate is sent, cleared by every other transition
    pricing_snapshot: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    date_completed: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    # One ISO timestamp per "Sent" transition
    estimate_sent: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    client: Mapped["Client"] = relationship("Client", back_populates="projects")
    estimator: Mapped[Optional["User"]] = relationship("User", foreign_keys=[estimator_id])

    @property
    def is_sent(self) -> bool:
        return self.estimate_status == EstimateStatus.SENT

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, number={self.project_number}, status={self.estimate_status})>"
