"""
Applications Repository

Database operations for the application ledger. All counts are aggregate
queries; nothing is cached on listings.

Functions flush but do not commit. The service layer owns each
transaction so that check-then-write sequences run under one set of row
locks.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from career_findr.modules.catalog.models import ListingType

from .models import Application, ApplicationStatus

# Valid status transitions per target type.
# Course applications are decided in one step; job applications may pass
# through shortlisting and interviews first.
VALID_STATUS_TRANSITIONS: dict[ListingType, dict[ApplicationStatus, set[ApplicationStatus]]] = {
    ListingType.COURSE: {
        ApplicationStatus.PENDING: {
            ApplicationStatus.ACCEPTED,
            ApplicationStatus.REJECTED,
            ApplicationStatus.WITHDRAWN,
        },
        ApplicationStatus.ACCEPTED: set(),
        ApplicationStatus.REJECTED: set(),
        ApplicationStatus.WITHDRAWN: set(),
    },
    ListingType.JOB: {
        ApplicationStatus.PENDING: {
            ApplicationStatus.SHORTLISTED,
            ApplicationStatus.INTERVIEWING,
            ApplicationStatus.ACCEPTED,
            ApplicationStatus.REJECTED,
            ApplicationStatus.WITHDRAWN,
        },
        ApplicationStatus.SHORTLISTED: {
            ApplicationStatus.INTERVIEWING,
            ApplicationStatus.ACCEPTED,
            ApplicationStatus.REJECTED,
        },
        ApplicationStatus.INTERVIEWING: {
            ApplicationStatus.ACCEPTED,
            ApplicationStatus.REJECTED,
        },
        ApplicationStatus.ACCEPTED: set(),
        ApplicationStatus.REJECTED: set(),
        ApplicationStatus.WITHDRAWN: set(),
    },
}

TERMINAL_STATUSES = frozenset(
    {ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED, ApplicationStatus.WITHDRAWN}
)


class InvalidStatusTransitionError(ValueError):
    """Raised when an invalid status transition is attempted."""

    def __init__(
        self,
        target_type: ListingType,
        current_status: ApplicationStatus,
        new_status: ApplicationStatus,
    ):
        self.target_type = target_type
        self.current_status = current_status
        self.new_status = new_status
        valid = VALID_STATUS_TRANSITIONS[target_type].get(current_status, set())
        super().__init__(
            f"Invalid {target_type.value} application transition: "
            f"{current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid)}"
        )


def can_transition(
    target_type: ListingType,
    current_status: ApplicationStatus,
    new_status: ApplicationStatus,
) -> bool:
    return new_status in VALID_STATUS_TRANSITIONS[target_type].get(current_status, set())


async def create(
    db: AsyncSession,
    *,
    student_id: UUID,
    target_type: ListingType,
    target_id: UUID,
    owner_id: UUID,
    cover_letter: str | None = None,
    resume_url: str | None = None,
    documents: list | None = None,
    additional_info: str | None = None,
    applied_at: datetime,
) -> Application:
    """
    Insert a pending application.

    Raises:
        sqlalchemy.exc.IntegrityError: On a duplicate (student, target)
    """
    application = Application(
        student_id=student_id,
        target_type=target_type,
        target_id=target_id,
        owner_id=owner_id,
        status=ApplicationStatus.PENDING,
        cover_letter=cover_letter,
        resume_url=resume_url,
        documents=documents or [],
        additional_info=additional_info,
        applied_at=applied_at,
    )

    db.add(application)
    await db.flush()
    await db.refresh(application)

    return application


async def get_by_id(
    db: AsyncSession,
    id: UUID,
    *,
    for_update: bool = False,
) -> Application | None:
    stmt = select(Application).where(Application.id == id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_for_student_and_target(
    db: AsyncSession,
    student_id: UUID,
    target_type: ListingType,
    target_id: UUID,
) -> Application | None:
    result = await db.execute(
        select(Application).where(
            Application.student_id == student_id,
            Application.target_type == target_type,
            Application.target_id == target_id,
        )
    )
    return result.scalar_one_or_none()


async def get_accepted_course_application(
    db: AsyncSession,
    student_id: UUID,
    course_id: UUID,
) -> Application | None:
    result = await db.execute(
        select(Application).where(
            Application.student_id == student_id,
            Application.target_type == ListingType.COURSE,
            Application.target_id == course_id,
            Application.status == ApplicationStatus.ACCEPTED,
        )
    )
    return result.scalar_one_or_none()


async def count_course_applications_to_institution(
    db: AsyncSession,
    student_id: UUID,
    institution_id: UUID,
) -> int:
    """
    Count every course application the student has made to the institution,
    whatever its status.
    """
    result = await db.execute(
        select(func.count(Application.id)).where(
            Application.student_id == student_id,
            Application.owner_id == institution_id,
            Application.target_type == ListingType.COURSE,
        )
    )
    return result.scalar_one()


async def count_for_target(
    db: AsyncSession,
    target_type: ListingType,
    target_id: UUID,
    status: ApplicationStatus,
) -> int:
    result = await db.execute(
        select(func.count(Application.id)).where(
            Application.target_type == target_type,
            Application.target_id == target_id,
            Application.status == status,
        )
    )
    return result.scalar_one()


async def status_counts_for_targets(
    db: AsyncSession,
    target_type: ListingType,
    target_ids: list[UUID],
) -> dict[UUID, dict[ApplicationStatus, int]]:
    """Per-listing status histogram for a batch of listings."""
    if not target_ids:
        return {}

    result = await db.execute(
        select(Application.target_id, Application.status, func.count(Application.id))
        .where(
            Application.target_type == target_type,
            Application.target_id.in_(target_ids),
        )
        .group_by(Application.target_id, Application.status)
    )

    counts: dict[UUID, dict[ApplicationStatus, int]] = {}
    for target_id, status, count in result.all():
        counts.setdefault(target_id, {})[status] = count
    return counts


async def status_counts(
    db: AsyncSession,
    *,
    owner_id: UUID | None = None,
    target_type: ListingType | None = None,
) -> dict[ApplicationStatus, int]:
    """Status histogram, optionally scoped to an owner and/or target type."""
    stmt = select(Application.status, func.count(Application.id)).group_by(Application.status)
    if owner_id is not None:
        stmt = stmt.where(Application.owner_id == owner_id)
    if target_type is not None:
        stmt = stmt.where(Application.target_type == target_type)

    result = await db.execute(stmt)
    counts = {status: 0 for status in ApplicationStatus}
    for status, count in result.all():
        counts[status] = count
    return counts


async def list_for_student(
    db: AsyncSession,
    student_id: UUID,
    *,
    status: ApplicationStatus | None = None,
    target_type: ListingType | None = None,
) -> list[Application]:
    stmt = select(Application).where(Application.student_id == student_id)
    if status is not None:
        stmt = stmt.where(Application.status == status)
    if target_type is not None:
        stmt = stmt.where(Application.target_type == target_type)

    result = await db.execute(stmt.order_by(Application.applied_at.desc()))
    return list(result.scalars().all())


async def list_for_target(
    db: AsyncSession,
    target_type: ListingType,
    target_id: UUID,
    *,
    status: ApplicationStatus | None = None,
) -> list[Application]:
    stmt = select(Application).where(
        Application.target_type == target_type,
        Application.target_id == target_id,
    )
    if status is not None:
        stmt = stmt.where(Application.status == status)

    result = await db.execute(stmt.order_by(Application.applied_at.desc()))
    return list(result.scalars().all())


async def update_status(
    db: AsyncSession,
    id: UUID,
    status: ApplicationStatus,
    **kwargs,
) -> Application:
    """
    Update application status and optional fields.

    Validates the transition against the table for the application's
    target type.

    Args:
        db: Database session
        id: Application UUID
        status: New status to set
        **kwargs: Additional fields to update (e.g. reviewed_at, remarks)

    Returns:
        Updated Application

    Raises:
        ValueError: If application not found
        InvalidStatusTransitionError: If the transition is not allowed
    """
    application = await get_by_id(db, id)
    if not application:
        raise ValueError(f"Application {id} not found")

    if not can_transition(application.target_type, application.status, status):
        raise InvalidStatusTransitionError(application.target_type, application.status, status)

    application.status = status

    for key, value in kwargs.items():
        if hasattr(application, key):
            setattr(application, key, value)

    await db.flush()

    return application
