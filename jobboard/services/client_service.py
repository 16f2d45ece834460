"""
ART Job Board - Client Service

Business logic for client management.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.models.client import Client, LoyaltyTier
from jobboard.utils.error_handling import ClientNotFoundException

logger = logging.getLogger(__name__)


class ClientService:
    """Service for client operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_clients(
        self,
        include_inactive: bool = False,
        search: Optional[str] = None,
    ) -> List[Client]:
        """Get clients, optionally filtered by name."""
        query = select(Client)

        if not include_inactive:
            query = query.where(Client.is_active == True)
        if search:
            query = query.where(Client.name.ilike(f"%{search}%"))

        query = query.order_by(Client.name)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_client_by_id(self, client_id: uuid.UUID) -> Client:
        """Get client by ID."""
        result = await self.db.execute(
            select(Client).where(Client.id == client_id)
        )
        client = result.scalar_one_or_none()
        if not client:
            raise ClientNotFoundException(client_id)
        return client

    async def create_client(self, **kwargs) -> Client:
        """Create a new client on the Elite tier."""
        client = Client(
            loyalty_tier=LoyaltyTier.ELITE,
            tier_effective_date=datetime.now(timezone.utc),
            **kwargs,
        )
        self.db.add(client)
        await self.db.commit()
        await self.db.refresh(client)

        logger.info(f"Client {client.name} created")
        return client

    async def update_client(self, client_id: uuid.UUID, **kwargs) -> Client:
        """Update client contact details."""
        client = await self.get_client_by_id(client_id)

        for key, value in kwargs.items():
            if hasattr(client, key):
                setattr(client, key, value)

        await self.db.commit()
        await self.db.refresh(client)
        return client
