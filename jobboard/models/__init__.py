"""
ART Job Board - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from jobboard.models.base import BaseModel, TimestampMixin
from jobboard.models.user import User, UserRole
from jobboard.models.client import (
    Client,
    ClientMonthlyUsage,
    CashbackEntry,
    LoyaltyTier,
)
from jobboard.models.project import (
    Project,
    EstimateStatus,
    ClientProjectStatus,
)

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "User",
    "UserRole",
    "Client",
    "ClientMonthlyUsage",
    "CashbackEntry",
    "LoyaltyTier",
    "Project",
    "EstimateStatus",
    "ClientProjectStatus",
]
