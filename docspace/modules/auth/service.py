"""
Authentication service.

Business logic for user registration, credential checks and lookups.
"""
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from docspace.core.exceptions import AuthenticationException, ConflictException
from docspace.core.metrics import record_auth_attempt
from docspace.core.security import create_access_token, generate_password_hash, verify_password
from docspace.modules.auth.models import User
from docspace.modules.auth.schemas import UserCreate

logger = get_logger(__name__)


class AuthService:
    """Service class for authentication operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """
        Get user by ID.

        Args:
            user_id: User ID

        Returns:
            User if found, None otherwise
        """
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """
        Get user by email.

        Args:
            email: User email, matched case-insensitively

        Returns:
            User if found, None otherwise
        """
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def create_user(self, user_data: UserCreate) -> User:
        """
        Create a new user.

        Args:
            user_data: User creation data

        Returns:
            Created user

        Raises:
            ConflictException: If the email is already registered
        """
        if await self.get_user_by_email(user_data.email):
            raise ConflictException("A user with this email already exists")

        user = User(
            email=user_data.email.lower(),
            full_name=user_data.full_name,
            hashed_password=generate_password_hash(user_data.password),
            is_active=True,
        )
        self.db.add(user)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException("A user with this email already exists")
        await self.db.refresh(user)

        logger.info("User created", user_id=str(user.id), email=user.email)
        return user

    async def authenticate_user(self, email: str, password: str) -> User:
        """
        Check credentials and stamp the login time.

        Args:
            email: Account email
            password: Plain text password

        Returns:
            The authenticated user

        Raises:
            AuthenticationException: On unknown email, wrong password or disabled account
        """
        user = await self.get_user_by_email(email)

        if user is None or not verify_password(password, user.hashed_password):
            record_auth_attempt(success=False)
            logger.info("Authentication failed", email=email.lower())
            raise AuthenticationException("Invalid email or password")

        if not user.is_active:
            record_auth_attempt(success=False)
            logger.info("Authentication failed: inactive account", user_id=str(user.id))
            raise AuthenticationException("Account is disabled")

        user.set_last_login()
        await self.db.commit()

        record_auth_attempt(success=True)
        logger.info("User authenticated successfully", user_id=str(user.id))
        return user

    @staticmethod
    def issue_token(user: User) -> str:
        """Access token for ``user``."""
        return create_access_token(subject=str(user.id))
