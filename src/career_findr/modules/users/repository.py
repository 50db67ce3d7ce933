"""
User Repository

Database operations for the identity directory.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from career_findr.modules.users.models import APPROVAL_REQUIRED_ROLES, User, UserRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        full_name: str,
        role: UserRole,
        is_verified: bool = False,
        is_approved: bool | None = None,
        profile: dict | None = None,
    ) -> User:
        """
        Create a new user record.

        Args:
            db: Database session
            email: User's email address (unique)
            full_name: Display name
            role: User's role
            is_verified: Whether the email is verified
            is_approved: Defaults to False for institutes/companies, True otherwise
            profile: Optional profile blob

        Returns:
            Created User instance (flushed, not committed)
        """
        if is_approved is None:
            is_approved = role not in APPROVAL_REQUIRED_ROLES

        user = User(
            email=email,
            full_name=full_name,
            role=role,
            is_verified=is_verified,
            is_approved=is_approved,
            profile=profile or {},
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info(f"Created user: {user.id} - {user.email} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> User | None:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id_for_update(db: AsyncSession, user_id: UUID) -> User | None:
        """
        Get a user and lock the row until the transaction ends.

        Used to serialize per-student lifecycle writes (application cap,
        single accepted admission).
        """
        result = await db.execute(select(User).where(User.id == user_id).with_for_update())
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    @staticmethod
    async def email_exists(db: AsyncSession, email: str) -> bool:
        user = await UserRepository.get_by_email(db, email)
        return user is not None

    @staticmethod
    async def get_pending_approvals(db: AsyncSession, role: UserRole | None = None) -> list[User]:
        """Verified institutes/companies that have not been approved yet, oldest first."""
        roles = [role] if role else list(APPROVAL_REQUIRED_ROLES)
        result = await db.execute(
            select(User)
            .where(
                User.role.in_(roles),
                User.is_verified.is_(True),
                User.is_approved.is_(False),
            )
            .order_by(User.created_at.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def set_approval(
        db: AsyncSession,
        user: User,
        *,
        approved: bool,
        approved_by: UUID,
        approved_at: datetime,
        remarks: str | None,
    ) -> User:
        user.is_approved = approved
        user.approved_by = approved_by
        user.approved_at = approved_at
        user.approval_remarks = remarks
        await db.flush()
        return user

    @staticmethod
    async def get_verified_students(db: AsyncSession) -> list[User]:
        result = await db.execute(
            select(User)
            .where(
                User.role == UserRole.STUDENT,
                User.is_verified.is_(True),
                User.is_active.is_(True),
            )
            .order_by(User.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_students_by_ids(db: AsyncSession, user_ids: list[UUID]) -> list[User]:
        """Verified, active students among ``user_ids``, in no particular order."""
        if not user_ids:
            return []
        result = await db.execute(
            select(User).where(
                User.id.in_(user_ids),
                User.role == UserRole.STUDENT,
                User.is_verified.is_(True),
                User.is_active.is_(True),
            )
        )
        return list(result.scalars().all())

    @staticmethod
    async def count_by_role(db: AsyncSession) -> dict[UserRole, int]:
        result = await db.execute(select(User.role, func.count(User.id)).group_by(User.role))
        counts = {role: 0 for role in UserRole}
        for role, count in result.all():
            counts[role] = count
        return counts
