"""
ART Job Board - Celery Tasks

Background tasks for scheduled operations.
"""

import asyncio
import logging
import uuid
from typing import Any, Dict, Optional

from celery import shared_task

from jobboard.database import async_session_maker, engine
from jobboard.services.loyalty_tier_service import LoyaltyTierService

logger = logging.getLogger(__name__)


def run_async(coro):
    """Helper to run async functions in Celery tasks."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


# ===========================================
# LOYALTY TASKS
# ===========================================

@shared_task(name='jobboard.tasks.celery_tasks.evaluate_monthly_tiers_task')
def evaluate_monthly_tiers_task(month: Optional[str] = None) -> Dict[str, Any]:
    """Evaluate every active client's tier for a closed month."""
    return run_async(_evaluate_monthly_tiers(month))


async def _evaluate_monthly_tiers(month: Optional[str]) -> Dict[str, Any]:
    try:
        async with async_session_maker() as db:
            summary = await LoyaltyTierService(db).run_monthly_evaluation_for_all_clients(month)
    finally:
        # Pooled connections belong to this task's event loop
        await engine.dispose()

    logger.info(f"Monthly tier task finished: {summary}")
    return summary


@shared_task(name='jobboard.tasks.celery_tasks.evaluate_client_tier_task')
def evaluate_client_tier_task(client_id: str, month: Optional[str] = None) -> Dict[str, Any]:
    """Evaluate one client, e.g. after late quantities were entered."""
    return run_async(_evaluate_client_tier(uuid.UUID(client_id), month))


async def _evaluate_client_tier(client_id: uuid.UUID, month: Optional[str]) -> Dict[str, Any]:
    try:
        async with async_session_maker() as db:
            return await LoyaltyTierService(db).evaluate_monthly_tier(client_id, month)
    finally:
        await engine.dispose()
