"""
ART Job Board - Celery Task Tests
"""

from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal

import pytest
from celery.schedules import crontab
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.celery_app import celery_app
from jobboard.models.client import Client
from jobboard.models.project import EstimateStatus, Project
from jobboard.services.loyalty_tier_service import LoyaltyTierService
from jobboard.tasks import celery_tasks
from jobboard.tasks.celery_tasks import evaluate_client_tier_task, evaluate_monthly_tiers_task


def test_monthly_tier_evaluation_is_scheduled():
    entry = celery_app.conf.beat_schedule["evaluate-monthly-tiers"]
    assert entry["task"] == evaluate_monthly_tiers_task.name
    assert entry["schedule"] == crontab(day_of_month=1, hour=1, minute=0)


def test_task_names_are_stable():
    assert evaluate_monthly_tiers_task.name == "jobboard.tasks.celery_tasks.evaluate_monthly_tiers_task"
    assert evaluate_client_tier_task.name == "jobboard.tasks.celery_tasks.evaluate_client_tier_task"


class _EngineStub:
    """Stands in for the app engine so the shared test database survives."""

    def __init__(self):
        self.disposed = False

    async def dispose(self):
        self.disposed = True


@pytest.mark.asyncio
async def test_client_tier_task_evaluates_and_disposes_engine(
    db_session: AsyncSession, test_client_account: Client, monkeypatch
):
    db_session.add(Project(
        project_number="26-08-001",
        name="Job 26-08-001",
        client_id=test_client_account.id,
        posting_date=date(2026, 8, 5),
        plan_type="Standard",
        qty=Decimal("12"),
        estimate_status=EstimateStatus.SENT,
        estimate_sent=[],
    ))
    await db_session.commit()

    @asynccontextmanager
    async def session_factory():
        yield db_session

    engine = _EngineStub()
    monkeypatch.setattr(celery_tasks, "async_session_maker", session_factory)
    monkeypatch.setattr(celery_tasks, "engine", engine)

    result = await celery_tasks._evaluate_client_tier(test_client_account.id, "2026-08")

    assert result["skipped"] is False
    assert result["tier"] == "Elite"
    assert Decimal(result["units"]) == Decimal("12")
    assert engine.disposed is True

    client = await LoyaltyTierService(db_session).get_client(test_client_account.id)
    assert [entry.month for entry in client.monthly_history] == ["2026-08"]
