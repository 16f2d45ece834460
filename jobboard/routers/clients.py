"""
ART Job Board - Clients Router

API endpoints for client management.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.database import get_async_session
from jobboard.dependencies import require_permission
from jobboard.models.user import User
from jobboard.schemas.client import ClientCreateRequest, ClientResponse, ClientUpdateRequest
from jobboard.services.client_service import ClientService
from jobboard.utils.permissions import Permission


router = APIRouter()


@router.get(
    "",
    response_model=List[ClientResponse],
    summary="List clients",
)
async def list_clients(
    search: Optional[str] = Query(None, description="Filter by name"),
    include_inactive: bool = Query(False),
    current_user: User = Depends(require_permission(Permission.VIEW_CLIENTS)),
    db: AsyncSession = Depends(get_async_session),
):
    client_service = ClientService(db)
    return await client_service.get_clients(include_inactive=include_inactive, search=search)


@router.post(
    "",
    response_model=ClientResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create client",
    description="Create a client. New clients start on the Elite tier.",
)
async def create_client(
    request: ClientCreateRequest,
    current_user: User = Depends(require_permission(Permission.MANAGE_CLIENTS)),
    db: AsyncSession = Depends(get_async_session),
):
    client_service = ClientService(db)
    return await client_service.create_client(**request.model_dump())


@router.get(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Get client",
)
async def get_client(
    client_id: UUID,
    current_user: User = Depends(require_permission(Permission.VIEW_CLIENTS)),
    db: AsyncSession = Depends(get_async_session),
):
    client_service = ClientService(db)
    return await client_service.get_client_by_id(client_id)


@router.patch(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Update client",
)
async def update_client(
    client_id: UUID,
    request: ClientUpdateRequest,
    current_user: User = Depends(require_permission(Permission.MANAGE_CLIENTS)),
    db: AsyncSession = Depends(get_async_session),
):
    client_service = ClientService(db)
    return await client_service.update_client(client_id, **request.model_dump(exclude_unset=True))
