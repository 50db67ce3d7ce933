"""
Admissions Service Layer

Admission offers follow accepted course applications. Institutes issue
offers in batches; students answer each offer once.

Rules:
- An offer needs an accepted application for the (student, course) pair
- One admission per (student, course); repeats are skipped, not errors
- A student's response is written once and never changes
- A student may accept at most one admission across every institution

Issuing is best-effort: each candidate is committed on its own, so one
bad candidate never undoes the others. Responding locks the student's
identity row, and a partial unique index on accepted responses backs up
the single-acceptance rule in the database.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from career_findr.core.email import notify
from career_findr.modules.admissions import repository
from career_findr.modules.admissions.models import Admission, AdmissionResponse
from career_findr.modules.applications import repository as application_repository
from career_findr.modules.catalog import service as catalog_service
from career_findr.modules.catalog.models import ListingType
from career_findr.modules.shared import utcnow
from career_findr.modules.shared.errors import ConflictError, LifecycleError
from career_findr.modules.shared.guards import load_owned
from career_findr.modules.users import service as user_service

logger = logging.getLogger(__name__)


class AdmissionAlreadyRespondedError(ConflictError):
    def __init__(self, response: AdmissionResponse):
        super().__init__(
            message=f"You have already {response.value} this admission offer",
            error_code="ADMISSION_ALREADY_RESPONDED",
        )


class AdmissionAlreadyAcceptedError(ConflictError):
    def __init__(self):
        super().__init__(
            message="You have already accepted another admission offer",
            error_code="ADMISSION_ALREADY_ACCEPTED",
        )


async def _load_course(db: AsyncSession, course_id: UUID):
    return await catalog_service.get_listing(db, ListingType.COURSE, course_id)


async def _lock_admission(db: AsyncSession, admission_id: UUID) -> Admission | None:
    return await repository.get_by_id(db, admission_id, for_update=True)


async def _notify_offers(
    db: AsyncSession,
    admissions: list[Admission],
    course_title: str,
    institution_name: str,
) -> None:
    """Best-effort offer emails; failures are logged and skipped."""
    for admission in admissions:
        try:
            student = await user_service.get_user(db, admission.student_id)
            sent = await notify(
                student.email,
                "admission_offer",
                {
                    "student_name": student.full_name,
                    "course_title": course_title,
                    "institution_name": institution_name,
                },
            )
            if not sent:
                logger.error(f"Failed to send offer email for admission {admission.id}")
        except Exception as e:
            logger.error(f"Exception sending offer email for admission {admission.id}: {e}")


async def issue_admission_offers(
    db: AsyncSession,
    institution_id: UUID,
    course_id: UUID,
    student_ids: list[UUID],
) -> list[Admission]:
    """
    Offer admission to a batch of students for one course.

    Candidates without an accepted application, or who already hold an
    admission for the course, are skipped silently. Callers diff the
    result against ``student_ids`` to see who was skipped.

    Args:
        db: Database session
        institution_id: The institute issuing the offers
        course_id: Course the offers are for
        student_ids: Candidates; duplicates are ignored

    Returns:
        The admissions actually created, in request order

    Raises:
        NotFoundError: If the course doesn't exist
        ForbiddenError: If the institute doesn't own the course or isn't approved
    """
    institution = await user_service.ensure_account_approved(db, institution_id)
    institution_name = institution.full_name

    course = await load_owned(
        db,
        _load_course,
        course_id,
        institution_id,
        lambda item: item.owner_id,
        resource_name="course",
    )

    created: list[Admission] = []
    skipped = 0

    for student_id in dict.fromkeys(student_ids):
        application = await application_repository.get_accepted_course_application(
            db, student_id, course_id
        )
        if application is None:
            skipped += 1
            continue

        existing = await repository.get_for_student_and_course(db, student_id, course_id)
        if existing is not None:
            skipped += 1
            continue

        try:
            admission = await repository.create(
                db,
                student_id=student_id,
                course_id=course_id,
                institution_id=institution_id,
                application_id=application.id,
                offered_at=utcnow(),
            )
            await db.commit()
        except IntegrityError:
            # A concurrent batch created the same offer first
            await db.rollback()
            logger.warning(f"Admission for student {student_id} / course {course_id} already exists")
            skipped += 1
            continue

        # Detach so later rollbacks in this batch don't expire it
        db.expunge(admission)
        created.append(admission)

    logger.info(
        f"Institute {institution_id} issued {len(created)} admission(s) for course {course_id}, "
        f"skipped {skipped}"
    )

    await _notify_offers(db, created, course.title, institution_name)

    return created


async def respond_to_admission(
    db: AsyncSession,
    student_id: UUID,
    admission_id: UUID,
    accept: bool,
) -> Admission:
    """
    Record a student's one-time answer to an admission offer.

    Raises:
        NotFoundError: If the student or admission doesn't exist
        ForbiddenError: If the admission belongs to another student
        AdmissionAlreadyRespondedError: If the student already answered this offer
        AdmissionAlreadyAcceptedError: If accepting while another admission is accepted
    """
    response = AdmissionResponse.ACCEPTED if accept else AdmissionResponse.DECLINED

    try:
        # Serializes concurrent responses from the same student
        await user_service.get_user(db, student_id, for_update=True)

        admission = await load_owned(
            db,
            _lock_admission,
            admission_id,
            student_id,
            lambda item: item.student_id,
            resource_name="admission",
        )

        if admission.student_response is not None:
            raise AdmissionAlreadyRespondedError(admission.student_response)

        if accept:
            accepted = await repository.get_accepted_for_student(db, student_id)
            if accepted is not None and accepted.id != admission.id:
                logger.warning(
                    f"Student {student_id} tried to accept admission {admission_id} "
                    f"while holding {accepted.id}"
                )
                raise AdmissionAlreadyAcceptedError()

        admission = await repository.set_response(db, admission, response, utcnow())
        await db.commit()

    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Concurrent acceptance rejected for student {student_id}")
        raise AdmissionAlreadyAcceptedError() from e
    except LifecycleError:
        await db.rollback()
        raise

    logger.info(f"Student {student_id} {response.value} admission {admission_id}")
    return admission


def summarize(admissions: list[Admission]) -> dict[str, int]:
    summary = {"total": len(admissions), "awaiting_response": 0, "accepted": 0, "declined": 0}
    for admission in admissions:
        if admission.student_response is None:
            summary["awaiting_response"] += 1
        else:
            summary[admission.student_response.value] += 1
    return summary


async def list_student_admissions(
    db: AsyncSession,
    student_id: UUID,
) -> tuple[list[Admission], dict[str, int]]:
    admissions = await repository.list_for_student(db, student_id)
    return admissions, summarize(admissions)


async def list_institution_admissions(
    db: AsyncSession,
    institution_id: UUID,
    *,
    course_id: UUID | None = None,
) -> tuple[list[Admission], dict[str, int]]:
    admissions = await repository.list_for_institution(db, institution_id, course_id=course_id)
    return admissions, summarize(admissions)
