"""
Applications Service Layer

Business rules for the application ledger. Orchestrates repository
operations, identity and catalog lookups, and student notifications.

This module implements:
1. Submission:
   - Target must exist, be active and not past its deadline
   - Course applications are capped per (student, institution)
   - Exact duplicates are refused (unique constraint as the final guard)
   - Listings at capacity refuse new applications

2. Review (listing owner):
   - Allowed decisions depend on the target type
   - Only non-terminal applications can be reviewed
   - Acceptance re-checks capacity with the listing row locked

3. Withdrawal (applicant):
   - Only pending applications can be withdrawn; withdrawn is terminal

4. Read views:
   - Student history, per-listing review queues, owner dashboard stats

Concurrency:
- Submission locks the student's identity row, which serializes the cap
  and duplicate checks per student
- Review locks the application row (double review) and, on acceptance,
  the listing row (capacity)
- Every failure rolls back before raising, so errors never leave partial
  writes behind
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from career_findr.core.config import settings
from career_findr.core.email import notify
from career_findr.modules.applications import repository
from career_findr.modules.applications.models import Application, ApplicationStatus
from career_findr.modules.applications.repository import (
    InvalidStatusTransitionError,
    can_transition,
)
from career_findr.modules.applications.schemas import ApplicationCreate, ReviewDecision
from career_findr.modules.catalog import service as catalog_service
from career_findr.modules.catalog.models import ListingType
from career_findr.modules.shared import utcnow
from career_findr.modules.shared.errors import (
    CapacityExceededError,
    ConflictError,
    ForbiddenError,
    LifecycleError,
    LifecycleValidationError,
    NotFoundError,
)
from career_findr.modules.shared.guards import load_owned
from career_findr.modules.users import service as user_service
from career_findr.modules.users.models import UserRole

logger = logging.getLogger(__name__)


# ============================================
# Errors
# ============================================


class DuplicateApplicationError(ConflictError):
    def __init__(self, target_type: ListingType):
        super().__init__(
            message=f"You have already applied for this {target_type.value}",
            error_code="DUPLICATE_APPLICATION",
        )


class InstitutionApplicationLimitError(ConflictError):
    def __init__(self, limit: int):
        super().__init__(
            message=f"You can only apply to a maximum of {limit} courses per institution",
            error_code="INSTITUTION_APPLICATION_LIMIT",
        )


class ListingClosedError(ConflictError):
    def __init__(self, target_type: ListingType):
        super().__init__(
            message=f"This {target_type.value} is no longer accepting applications",
            error_code="LISTING_CLOSED",
        )


class ApplicationAlreadyReviewedError(ConflictError):
    def __init__(self, current_status: ApplicationStatus):
        super().__init__(
            message=f"Application has already been {current_status.value} and cannot be reviewed",
            error_code="APPLICATION_ALREADY_REVIEWED",
        )


class CannotWithdrawError(ConflictError):
    def __init__(self, current_status: ApplicationStatus):
        super().__init__(
            message=f"Cannot withdraw an application in status: {current_status.value}. "
            "Only pending applications can be withdrawn.",
            error_code="CANNOT_WITHDRAW",
        )


class InvalidReviewStatusError(LifecycleValidationError):
    def __init__(self, target_type: ListingType, decision: ReviewDecision):
        allowed = sorted(s.value for s in REVIEWABLE_TARGETS[target_type])
        super().__init__(
            message=f"'{decision.value}' is not a valid decision for a {target_type.value} "
            f"application. Allowed: {allowed}",
            error_code="INVALID_REVIEW_STATUS",
        )


# Statuses a reviewer may set, per target type
REVIEWABLE_TARGETS: dict[ListingType, frozenset[ApplicationStatus]] = {
    ListingType.COURSE: frozenset({ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED}),
    ListingType.JOB: frozenset(
        {
            ApplicationStatus.SHORTLISTED,
            ApplicationStatus.INTERVIEWING,
            ApplicationStatus.ACCEPTED,
            ApplicationStatus.REJECTED,
        }
    ),
}


async def _lock_application(db: AsyncSession, application_id: UUID) -> Application | None:
    return await repository.get_by_id(db, application_id, for_update=True)


# ============================================
# Submission
# ============================================


async def submit_application(
    db: AsyncSession,
    student_id: UUID,
    data: ApplicationCreate,
) -> Application:
    """
    Submit a course or job application for a student.

    Args:
        db: Database session
        student_id: The applicant
        data: Validated request body

    Returns:
        The new pending Application

    Raises:
        NotFoundError: If the student or listing doesn't exist
        ForbiddenError: If the caller is not an active student
        ListingClosedError: If the listing is closed or past its deadline
        InstitutionApplicationLimitError: If the per-institution cap is reached
        DuplicateApplicationError: If the student already applied
        CapacityExceededError: If the listing has no capacity left
    """
    target_type = data.target_type
    logger.info(f"Student {student_id} applying to {target_type.value} {data.target_id}")

    try:
        student = await user_service.get_user(db, student_id, for_update=True)
        if student.role != UserRole.STUDENT or not student.is_active:
            raise ForbiddenError("Only active students can submit applications", "ROLE_NOT_ALLOWED")

        listing = await catalog_service.get_listing(db, target_type, data.target_id)
        now = utcnow()

        if not listing.is_open(now):
            raise ListingClosedError(target_type)

        if target_type == ListingType.COURSE:
            limit = settings.max_course_applications_per_institution
            existing_count = await repository.count_course_applications_to_institution(
                db, student_id, listing.owner_id
            )
            if existing_count >= limit:
                logger.warning(
                    f"Student {student_id} hit application limit for institution {listing.owner_id}"
                )
                raise InstitutionApplicationLimitError(limit)

        duplicate = await repository.get_for_student_and_target(
            db, student_id, target_type, data.target_id
        )
        if duplicate is not None:
            raise DuplicateApplicationError(target_type)

        if listing.capacity is not None:
            accepted = await repository.count_for_target(
                db, target_type, data.target_id, ApplicationStatus.ACCEPTED
            )
            if accepted >= listing.capacity:
                raise CapacityExceededError()

        application = await repository.create(
            db,
            student_id=student_id,
            target_type=target_type,
            target_id=data.target_id,
            owner_id=listing.owner_id,
            cover_letter=data.cover_letter,
            resume_url=data.resume_url,
            documents=data.documents,
            additional_info=data.additional_info,
            applied_at=now,
        )
        await db.commit()

    except IntegrityError as e:
        # Lost a race against a concurrent identical submission
        await db.rollback()
        logger.warning(f"Concurrent duplicate application by {student_id} for {data.target_id}")
        raise DuplicateApplicationError(target_type) from e
    except LifecycleError:
        await db.rollback()
        raise

    logger.info(f"Created application {application.id} ({target_type.value} {data.target_id})")
    return application


# ============================================
# Review
# ============================================


async def _notify_review(db: AsyncSession, application: Application, listing_title: str) -> None:
    """Best-effort decision email; never raises."""
    try:
        student = await user_service.get_user(db, application.student_id)

        sent = await notify(
            student.email,
            "application_status",
            {
                "student_name": student.full_name,
                "listing_title": listing_title,
                "listing_type": application.target_type.value,
                "status": application.status.value,
                "remarks": application.remarks,
            },
        )
        if not sent:
            logger.error(f"Failed to send status email for application {application.id}")
    except Exception as e:
        logger.error(f"Exception sending status email for application {application.id}: {e}")


async def review_application(
    db: AsyncSession,
    reviewer_id: UUID,
    application_id: UUID,
    decision: ReviewDecision,
    remarks: str | None = None,
) -> Application:
    """
    Record the listing owner's decision on an application.

    Args:
        db: Database session
        reviewer_id: The institute/company reviewing
        application_id: Application to review
        decision: New status (validated against the target type)
        remarks: Optional note shown to the student

    Returns:
        The updated Application

    Raises:
        NotFoundError: If the application doesn't exist
        ForbiddenError: If the reviewer doesn't own the listing or isn't approved
        InvalidReviewStatusError: If the decision isn't allowed for this target type
        ApplicationAlreadyReviewedError: If the application is no longer reviewable
        CapacityExceededError: If accepting would exceed the listing's capacity
    """
    new_status = ApplicationStatus(decision.value)
    logger.info(f"Reviewer {reviewer_id} setting application {application_id} to {new_status.value}")

    try:
        application = await load_owned(
            db,
            _lock_application,
            application_id,
            reviewer_id,
            lambda item: item.owner_id,
            resource_name="application",
        )
        await user_service.ensure_account_approved(db, reviewer_id)

        target_type = application.target_type
        if new_status not in REVIEWABLE_TARGETS[target_type]:
            raise InvalidReviewStatusError(target_type, decision)

        if not can_transition(target_type, application.status, new_status):
            logger.warning(
                f"Cannot review application {application_id}: status={application.status.value}"
            )
            raise ApplicationAlreadyReviewedError(application.status)

        # Lock the listing so concurrent acceptances see each other's writes
        listing = await catalog_service.get_listing(
            db, target_type, application.target_id, for_update=new_status == ApplicationStatus.ACCEPTED
        )

        if new_status == ApplicationStatus.ACCEPTED and listing.capacity is not None:
            accepted = await repository.count_for_target(
                db, target_type, application.target_id, ApplicationStatus.ACCEPTED
            )
            if accepted >= listing.capacity:
                logger.warning(
                    f"Capacity reached for {target_type.value} {application.target_id}: "
                    f"{accepted}/{listing.capacity}"
                )
                raise CapacityExceededError()

        updated = await repository.update_status(
            db,
            application_id,
            new_status,
            reviewed_at=utcnow(),
            reviewed_by=reviewer_id,
            remarks=remarks,
        )
        await db.commit()

    except InvalidStatusTransitionError as e:
        await db.rollback()
        logger.error(f"Status transition error: {e}")
        raise ApplicationAlreadyReviewedError(e.current_status) from e
    except LifecycleError:
        await db.rollback()
        raise

    logger.info(f"Application {application_id} is now {new_status.value}")

    await _notify_review(db, updated, listing.title)

    return updated


# ============================================
# Withdrawal
# ============================================


async def withdraw_application(
    db: AsyncSession,
    student_id: UUID,
    application_id: UUID,
) -> Application:
    """
    Withdraw a pending application.

    Raises:
        NotFoundError: If the application doesn't exist
        ForbiddenError: If the caller is not the applicant
        CannotWithdrawError: If the application is no longer pending
    """
    try:
        application = await load_owned(
            db,
            _lock_application,
            application_id,
            student_id,
            lambda item: item.student_id,
            resource_name="application",
        )

        if application.status != ApplicationStatus.PENDING:
            raise CannotWithdrawError(application.status)

        updated = await repository.update_status(
            db,
            application_id,
            ApplicationStatus.WITHDRAWN,
            withdrawn_at=utcnow(),
        )
        await db.commit()

    except LifecycleError:
        await db.rollback()
        raise

    logger.info(f"Student {student_id} withdrew application {application_id}")
    return updated


# ============================================
# Read Views
# ============================================


def summarize(applications: list[Application]) -> dict[str, int]:
    """Status counts for a list of applications, plus the total."""
    summary = {status.value: 0 for status in ApplicationStatus}
    for application in applications:
        summary[application.status.value] += 1
    summary["total"] = len(applications)
    return summary


async def list_student_applications(
    db: AsyncSession,
    student_id: UUID,
    *,
    status: ApplicationStatus | None = None,
    target_type: ListingType | None = None,
) -> tuple[list[Application], dict[str, int]]:
    applications = await repository.list_for_student(
        db, student_id, status=status, target_type=target_type
    )
    return applications, summarize(applications)


async def list_listing_applications(
    db: AsyncSession,
    owner_id: UUID,
    target_type: ListingType,
    listing_id: UUID,
    *,
    status: ApplicationStatus | None = None,
) -> tuple[list[Application], dict[str, int]]:
    """
    Applications received for one of the owner's listings.

    Raises:
        NotFoundError: If the listing doesn't exist
        ForbiddenError: If the caller doesn't own it
    """

    async def _load_listing(session: AsyncSession, id: UUID):
        return await catalog_service.get_listing(session, target_type, id)

    await load_owned(
        db,
        _load_listing,
        listing_id,
        owner_id,
        lambda item: item.owner_id,
        resource_name=target_type.value,
    )

    applications = await repository.list_for_target(db, target_type, listing_id, status=status)
    return applications, summarize(applications)


async def get_application(
    db: AsyncSession,
    actor_id: UUID,
    actor_role: UserRole,
    application_id: UUID,
) -> Application:
    """
    Fetch one application. Visible to the applicant, the listing owner and admins.

    Raises:
        NotFoundError: If the application doesn't exist
        ForbiddenError: If the caller may not see it
    """
    application = await repository.get_by_id(db, application_id)
    if application is None:
        raise NotFoundError("Application", application_id)

    if actor_role != UserRole.ADMIN and actor_id not in (
        application.student_id,
        application.owner_id,
    ):
        raise ForbiddenError("You are not authorized to view this application")

    return application


async def get_owner_stats(
    db: AsyncSession,
    owner_id: UUID,
    listing_type: ListingType,
) -> dict:
    """Dashboard counts for an institute (courses) or company (jobs)."""
    from career_findr.modules.admissions import repository as admission_repository
    from career_findr.modules.catalog import repository as catalog_repository
    from career_findr.modules.catalog.models import ListingStatus

    listings = await catalog_repository.list_by_owner(db, listing_type, owner_id)
    counts = await repository.status_counts(db, owner_id=owner_id, target_type=listing_type)

    stats = {
        "listing_type": listing_type,
        "total_listings": len(listings),
        "active_listings": sum(1 for item in listings if item.status == ListingStatus.ACTIVE),
        "total_applications": sum(counts.values()),
        "pending_applications": counts[ApplicationStatus.PENDING],
        "accepted_applications": counts[ApplicationStatus.ACCEPTED],
        "rejected_applications": counts[ApplicationStatus.REJECTED],
    }

    if listing_type == ListingType.COURSE:
        admission_counts = await admission_repository.response_counts(db, institution_id=owner_id)
        stats["admissions_offered"] = admission_counts["offered"]
        stats["admissions_accepted"] = admission_counts["accepted"]

    return stats
