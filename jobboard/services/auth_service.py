"""
ART Job Board - Authentication Service

Business logic for user authentication and registration.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.config import settings
from jobboard.models.client import Client, LoyaltyTier
from jobboard.models.user import User, UserRole
from jobboard.utils.error_handling import (
    AuthenticationException,
    ClientNotFoundException,
    DuplicateEntryException,
    ErrorCode,
)
from jobboard.utils.security import create_access_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email address."""
        result = await self.db.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get user by ID."""
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def authenticate_user(self, email: str, password: str) -> User:
        """
        Authenticate user with email and password.

        Raises:
            AuthenticationException: unknown email, wrong password or inactive account
        """
        user = await self.get_user_by_email(email)
        if not user or not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login attempt for {email}")
            raise AuthenticationException("Invalid email or password", code=ErrorCode.UNAUTHORIZED)
        if not user.is_active:
            raise AuthenticationException("User account is deactivated", code=ErrorCode.FORBIDDEN)
        return user

    async def register_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        company_name: str,
        phone: Optional[str] = None,
        timezone_name: Optional[str] = None,
    ) -> User:
        """
        Register a client company and its portal login.

        The client starts on Elite like every new client.
        """
        if await self.get_user_by_email(email):
            raise DuplicateEntryException("User", "email", email)

        client = Client(
            name=company_name,
            email=email.lower(),
            phone=phone,
            timezone=timezone_name,
            loyalty_tier=LoyaltyTier.ELITE,
            tier_effective_date=datetime.now(timezone.utc),
        )
        self.db.add(client)
        await self.db.flush()

        user = User(
            email=email.lower(),
            hashed_password=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            role=UserRole.USER,
            client_id=client.id,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(f"Registered client {company_name} with portal user {user.email}")
        return user

    async def create_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: UserRole,
        client_id: Optional[uuid.UUID] = None,
    ) -> User:
        """Create an account on behalf of an admin."""
        if await self.get_user_by_email(email):
            raise DuplicateEntryException("User", "email", email)

        if client_id is not None:
            client = await self.db.get(Client, client_id)
            if not client:
                raise ClientNotFoundException(client_id)

        user = User(
            email=email.lower(),
            hashed_password=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            client_id=client_id,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(f"Created {role.value} account {user.email}")
        return user

    def create_token(self, user: User) -> dict:
        """Create access token for user."""
        access_token = create_access_token(
            data={"sub": str(user.id), "role": user.role.value}
        )
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": settings.access_token_expire_minutes * 60,
        }

    async def get_or_create_admin(self) -> Optional[User]:
        """Ensure the configured initial admin exists."""
        if not settings.admin_email or not settings.admin_password:
            return None

        user = await self.get_user_by_email(settings.admin_email)
        if user:
            return user

        user = await self.create_user(
            email=settings.admin_email,
            password=settings.admin_password,
            first_name=settings.admin_first_name,
            last_name=settings.admin_last_name,
            role=UserRole.ADMIN,
        )
        logger.info(f"Initial admin {user.email} created")
        return user
