"""
ART Job Board - Client Model

Clients (builders/roofers) ordering estimates, with their loyalty tier
state and the monthly usage ledger the tier is evaluated from.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from jobboard.models.base import BaseModel

if TYPE_CHECKING:
    from jobboard.models.project import Project


class LoyaltyTier(str, Enum):
    """Loyalty tier names."""
    CASUAL = "Casual"
    PRO = "Pro"
    ELITE = "Elite"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Client(BaseModel):
    """
    Client model.

    New clients start on Elite (program launch rollout); the tier is then
    re-evaluated every month from the previous closed month's units.
    """

    __tablename__ = "clients"
    __table_args__ = (
        CheckConstraint("protection_points >= 0", name="protection_points_non_negative"),
        CheckConstraint("protection_months >= 0", name="protection_months_non_negative"),
        CheckConstraint("cashback_balance >= 0", name="cashback_balance_non_negative"),
    )

    # Basic Info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    timezone: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="IANA timezone used for client-local dates",
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Loyalty tier
    loyalty_tier: Mapped[LoyaltyTier] = mapped_column(
        SQLEnum(LoyaltyTier, values_callable=_enum_values, name="loyalty_tier", create_constraint=True),
        default=LoyaltyTier.ELITE,
        nullable=False,
    )
    previous_tier: Mapped[Optional[LoyaltyTier]] = mapped_column(
        SQLEnum(LoyaltyTier, values_callable=_enum_values, name="previous_loyalty_tier", create_constraint=True),
        nullable=True,
    )
    tier_effective_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Manual override by an administrator
    manual_tier_override: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    manual_override_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Tier protection
    protection_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    protection_months: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    protection_tier: Mapped[Optional[LoyaltyTier]] = mapped_column(
        SQLEnum(LoyaltyTier, values_callable=_enum_values, name="protection_tier", create_constraint=True),
        nullable=True,
    )

    # Cashback
    cashback_balance: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        default=Decimal("0"),
        nullable=False,
    )
    total_units_billed: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    # Relationships
    monthly_history: Mapped[List["ClientMonthlyUsage"]] = relationship(
        "ClientMonthlyUsage",
        back_populates="client",
        order_by="ClientMonthlyUsage.month.desc()",
        cascade="all, delete-orphan",
    )
    cashback_history: Mapped[List["CashbackEntry"]] = relationship(
        "CashbackEntry",
        back_populates="client",
        order_by="CashbackEntry.created_at",
        cascade="all, delete-orphan",
    )
    projects: Mapped[List["Project"]] = relationship(
        "Project",
        back_populates="client",
    )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name}, tier={self.loyalty_tier})>"


class ClientMonthlyUsage(BaseModel):
    """
    One row per client per closed calendar month.

    Rows are written once by the tier evaluator and never updated by it.
    """

    __tablename__ = "client_monthly_usage"
    __table_args__ = (
        UniqueConstraint("client_id", "month", name="uq_client_monthly_usage_client_month"),
    )

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    month: Mapped[str] = mapped_column(String(7), nullable=False, comment="YYYY-MM")
    units: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    tier: Mapped[LoyaltyTier] = mapped_column(
        SQLEnum(LoyaltyTier, values_callable=_enum_values, name="usage_tier", create_constraint=True),
        nullable=False,
    )
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_billed: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    points_earned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    points_balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    protection_awarded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    protection_used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    change_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    client: Mapped["Client"] = relationship("Client", back_populates="monthly_history")

    def __repr__(self) -> str:
        return f"<ClientMonthlyUsage(client_id={self.client_id}, month={self.month}, tier={self.tier})>"


class CashbackEntry(BaseModel):
    """Cashback credit awarded on a tier upgrade, or applied to an invoice."""

    __tablename__ = "client_cashback_entries"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Positive for awards, negative for applications
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    from_tier: Mapped[Optional[LoyaltyTier]] = mapped_column(
        SQLEnum(LoyaltyTier, values_callable=_enum_values, name="cashback_from_tier", create_constraint=True),
        nullable=True,
    )
    to_tier: Mapped[Optional[LoyaltyTier]] = mapped_column(
        SQLEnum(LoyaltyTier, values_callable=_enum_values, name="cashback_to_tier", create_constraint=True),
        nullable=True,
    )
    note: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    client: Mapped["Client"] = relationship("Client", back_populates="cashback_history")
