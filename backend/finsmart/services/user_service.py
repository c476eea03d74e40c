"""User service - credential store access and account administration"""

from datetime import datetime, timezone
from typing import Optional
import asyncio
import logging
import re

from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from finsmart.models.user import User
from finsmart.schemas.response import MessageCode
from finsmart.schemas.user import UserCreate, UserProfileUpdate, UserRole, UserStatus
from finsmart.core.security import get_password_hash
from finsmart.core.exceptions import (
    AuthorizationError,
    DuplicateAccountError,
    DuplicateEmailError,
    DuplicateUsernameError,
    InvalidEmailFormatError,
    InvalidUsernameFormatError,
    MissingFieldsError,
    NoFieldsToUpdateError,
    ResourceNotFoundError,
    UserNotFoundError,
    UsernameLengthError,
)

logger = logging.getLogger(__name__)


class UserService:
    """Service for user management"""

    USERNAME_MIN_LENGTH = 3
    USERNAME_MAX_LENGTH = 50
    USERNAME_PATTERN = re.compile(r"[a-zA-Z0-9_]+")
    EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

    @staticmethod
    def validate_username(username: str) -> None:
        if not UserService.USERNAME_MIN_LENGTH <= len(username) <= UserService.USERNAME_MAX_LENGTH:
            raise UsernameLengthError()
        if not UserService.USERNAME_PATTERN.fullmatch(username):
            raise InvalidUsernameFormatError()

    @staticmethod
    def validate_email(email: str) -> None:
        if not UserService.EMAIL_PATTERN.fullmatch(email):
            raise InvalidEmailFormatError()

    @staticmethod
    async def get_by_username(db: AsyncSession, username: str) -> Optional[User]:
        """Get user by username, soft-deleted rows included"""
        result = await db.execute(select(User).where(User.username == username).limit(1))
        return result.scalars().first()

    @staticmethod
    async def get_active_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
        """Get non-deleted user by ID"""
        result = await db.execute(
            select(User).where(User.id == user_id, User.is_deleted.is_(False)).limit(1)
        )
        return result.scalars().first()

    @staticmethod
    async def create_user(
        db: AsyncSession,
        user_data: UserCreate,
        role: UserRole = UserRole.USER,
    ) -> User:
        """
        Create new user

        Args:
            db: Database session
            user_data: Registration data
            role: Role to assign (registration always uses ``user``)

        Returns:
            Created user
        """
        if not user_data.username or not user_data.email or not user_data.password:
            raise MissingFieldsError(MessageCode.USERNAME_OR_EMAIL_REQUIRED)

        UserService.validate_username(user_data.username)
        UserService.validate_email(user_data.email)

        # Soft-deleted accounts keep their username and email
        result = await db.execute(
            select(User)
            .where(or_(User.username == user_data.username, User.email == user_data.email))
            .limit(1)
        )
        existing = result.scalars().first()
        if existing:
            if existing.username == user_data.username:
                raise DuplicateUsernameError()
            raise DuplicateEmailError()

        password_hash = await asyncio.to_thread(get_password_hash, user_data.password)
        user = User(
            username=user_data.username,
            email=user_data.email,
            password_hash=password_hash,
            nick_name=user_data.nick_name or None,
            avatar_url=user_data.avatar_url or None,
            role=role.value,
            status=UserStatus.ENABLED.value,
            failed_login_count=0,
            is_deleted=False,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration
            await db.rollback()
            raise DuplicateAccountError()
        await db.refresh(user)

        logger.info("Created user: %s (role: %s)", user.username, user.role)
        return user

    @staticmethod
    async def increment_failed_logins(db: AsyncSession, user_id: int) -> int:
        """
        Atomically bump the failed-login counter.

        Runs as a single UPDATE so concurrent failures cannot under-count.
        The caller owns the transaction.

        Returns:
            The counter value after the increment
        """
        result = await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(failed_login_count=User.failed_login_count + 1)
            .returning(User.failed_login_count)
            .execution_options(synchronize_session="fetch")
        )
        return result.scalar_one()

    @staticmethod
    async def record_successful_login(db: AsyncSession, user_id: int) -> None:
        """Reset the failed-login counter and stamp last_login_at (caller commits)"""
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(failed_login_count=0, last_login_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )

    @staticmethod
    async def update_profile(db: AsyncSession, user_id: int, data: UserProfileUpdate) -> User:
        """
        Apply a partial profile update

        ``nick_name`` and ``avatar_url`` may be cleared by sending an empty
        value; ``username`` and ``email`` are only changed when non-empty.
        """
        provided = data.model_fields_set
        if (
            not data.username
            and not data.email
            and "nick_name" not in provided
            and "avatar_url" not in provided
        ):
            raise NoFieldsToUpdateError()

        if data.email:
            UserService.validate_email(data.email)
        if data.username:
            UserService.validate_username(data.username)

        user = await UserService.get_active_by_id(db, user_id)
        if not user:
            raise UserNotFoundError()

        if data.username and data.username != user.username:
            result = await db.execute(
                select(User.id).where(
                    User.username == data.username,
                    User.id != user_id,
                ).limit(1)
            )
            if result.first():
                raise DuplicateUsernameError()

        if data.email and data.email != user.email:
            result = await db.execute(
                select(User.id).where(
                    User.email == data.email,
                    User.id != user_id,
                ).limit(1)
            )
            if result.first():
                raise DuplicateEmailError()

        if data.username:
            user.username = data.username
        if data.email:
            user.email = data.email
        if "nick_name" in provided:
            user.nick_name = data.nick_name or None
        if "avatar_url" in provided:
            user.avatar_url = data.avatar_url or None
        user.updated_at = datetime.now(timezone.utc)

        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise DuplicateAccountError()

        logger.info("Updated profile for user id=%s", user_id)
        return user

    @staticmethod
    async def _get_for_admin(db: AsyncSession, user_id: int) -> User:
        user = await UserService.get_active_by_id(db, user_id)
        if not user:
            raise ResourceNotFoundError("User")
        return user

    @staticmethod
    async def set_status(db: AsyncSession, user_id: int, status: UserStatus) -> User:
        """Enable or disable an account"""
        user = await UserService._get_for_admin(db, user_id)
        user.status = status.value
        await db.commit()
        logger.info("Set status of user %s to %s", user.username, status.value)
        return user

    @staticmethod
    async def reset_failed_logins(db: AsyncSession, user_id: int) -> User:
        """Clear the lockout counter; the only unlock path besides a successful login"""
        user = await UserService._get_for_admin(db, user_id)
        user.failed_login_count = 0
        await db.commit()
        logger.info("Unlocked user: %s", user.username)
        return user

    @staticmethod
    async def soft_delete(db: AsyncSession, user_id: int) -> User:
        """
        Soft-delete a user

        Raises:
            ResourceNotFoundError: No active user with this id
            AuthorizationError: Target is an administrator
        """
        user = await UserService._get_for_admin(db, user_id)

        # Don't allow deleting admin users
        if user.role == UserRole.ADMIN.value:
            raise AuthorizationError("Cannot delete admin user")

        user.is_deleted = True
        await db.commit()
        logger.info("Soft-deleted user: %s", user.username)
        return user


# Singleton instance
user_service = UserService()
