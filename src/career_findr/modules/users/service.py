"""
Users Service Layer

Identity lookups used by the lifecycle services, plus the admin approval
workflow for institute and company accounts.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from career_findr.core.config import settings
from career_findr.core.email import notify
from career_findr.modules.shared import utcnow
from career_findr.modules.shared.errors import (
    ForbiddenError,
    LifecycleValidationError,
    NotFoundError,
)
from career_findr.modules.users.models import User, UserRole
from career_findr.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


class AccountNotApprovedError(ForbiddenError):
    def __init__(self):
        super().__init__(
            message="Your account is pending admin approval",
            error_code="ACCOUNT_NOT_APPROVED",
        )


async def get_user(db: AsyncSession, user_id: UUID, *, for_update: bool = False) -> User:
    """
    Look up a user.

    Raises:
        NotFoundError: If the user doesn't exist
    """
    if for_update:
        user = await UserRepository.get_by_id_for_update(db, user_id)
    else:
        user = await UserRepository.get_by_id(db, user_id)

    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def ensure_account_approved(db: AsyncSession, user_id: UUID) -> User:
    """
    Ensure an institute/company may still act on its listings.

    Deactivated accounts are always refused. Unapproved institutes and
    companies are refused while ENFORCE_OWNER_APPROVAL is on.

    Raises:
        NotFoundError: If the user doesn't exist
        ForbiddenError: If the account may not act
    """
    user = await get_user(db, user_id)

    if not user.is_active:
        raise ForbiddenError("Your account has been deactivated", "ACCOUNT_INACTIVE")

    if settings.enforce_owner_approval and user.requires_approval and not user.is_approved:
        logger.warning(f"Unapproved {user.role.value} {user_id} attempted an owner action")
        raise AccountNotApprovedError()

    return user


async def get_pending_approvals(db: AsyncSession, role: UserRole | None = None) -> list[User]:
    """
    Verified institutes/companies waiting for approval.

    Raises:
        LifecycleValidationError: If ``role`` is not institute or company
    """
    if role is not None and role not in (UserRole.INSTITUTE, UserRole.COMPANY):
        raise LifecycleValidationError("Only institutes and companies require approval")
    return await UserRepository.get_pending_approvals(db, role)


async def set_approval(
    db: AsyncSession,
    admin_id: UUID,
    user_id: UUID,
    *,
    approved: bool,
    remarks: str | None = None,
) -> User:
    """
    Approve or un-approve an institute/company account.

    The approval email is best-effort and sent after commit.

    Raises:
        NotFoundError: If the user doesn't exist
        LifecycleValidationError: If the user is not an institute or company
    """
    user = await get_user(db, user_id, for_update=True)

    if not user.requires_approval:
        raise LifecycleValidationError(
            "Only institute and company accounts can be approved",
            "APPROVAL_NOT_APPLICABLE",
        )

    await UserRepository.set_approval(
        db,
        user,
        approved=approved,
        approved_by=admin_id,
        approved_at=utcnow(),
        remarks=remarks,
    )
    await db.commit()

    logger.info(
        f"Admin {admin_id} {'approved' if approved else 'revoked approval for'} "
        f"{user.role.value} {user_id}"
    )

    if approved:
        try:
            sent = await notify(
                user.email,
                "account_approval",
                {"account_name": user.full_name, "role": user.role.value, "remarks": remarks},
            )
            if not sent:
                logger.error(f"Failed to send approval email for user {user_id}")
        except Exception as e:
            logger.error(f"Exception sending approval email for user {user_id}: {e}")

    return user


def _matches_candidate(
    user: User,
    skills: list[str] | None,
    location: str | None,
    education: str | None,
) -> bool:
    profile = user.profile or {}

    if skills:
        wanted = {skill.lower() for skill in skills}
        have = {str(skill).lower() for skill in profile.get("skills", [])}
        if not wanted & have:
            return False

    if location:
        if location.lower() not in str(profile.get("location", "")).lower():
            return False

    if education:
        entries = profile.get("education", [])
        haystack = " ".join(str(entry) for entry in entries).lower()
        if education.lower() not in haystack:
            return False

    return True


async def find_candidates(
    db: AsyncSession,
    *,
    skills: list[str] | None = None,
    location: str | None = None,
    education: str | None = None,
) -> list[User]:
    """
    Verified students whose profile matches every given filter.

    Skills match if any requested skill is present. Location and education
    are case-insensitive substring matches.
    """
    students = await UserRepository.get_verified_students(db)
    return [s for s in students if _matches_candidate(s, skills, location, education)]


async def get_platform_stats(db: AsyncSession) -> dict:
    """Counts for the admin dashboard."""
    from career_findr.modules.admissions import repository as admission_repository
    from career_findr.modules.applications import repository as application_repository

    users_by_role = await UserRepository.count_by_role(db)
    pending = await UserRepository.get_pending_approvals(db)
    applications_by_status = await application_repository.status_counts(db)
    admissions = await admission_repository.response_counts(db)

    return {
        "users_by_role": {role.value: count for role, count in users_by_role.items()},
        "pending_approvals": len(pending),
        "applications_by_status": {
            status.value: count for status, count in applications_by_status.items()
        },
        "admissions": admissions,
    }
