"""
Admissions Repository

Database operations for admission offers. Functions flush but do not
commit; the service layer owns each transaction.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Admission, AdmissionResponse, AdmissionStatus


async def create(
    db: AsyncSession,
    *,
    student_id: UUID,
    course_id: UUID,
    institution_id: UUID,
    application_id: UUID,
    offered_at: datetime,
) -> Admission:
    """
    Insert an offered admission with no response.

    Raises:
        sqlalchemy.exc.IntegrityError: If the (student, course) pair already has one
    """
    admission = Admission(
        student_id=student_id,
        course_id=course_id,
        institution_id=institution_id,
        application_id=application_id,
        status=AdmissionStatus.OFFERED,
        student_response=None,
        offered_at=offered_at,
    )

    db.add(admission)
    await db.flush()
    await db.refresh(admission)

    return admission


async def get_by_id(
    db: AsyncSession,
    id: UUID,
    *,
    for_update: bool = False,
) -> Admission | None:
    stmt = select(Admission).where(Admission.id == id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_for_student_and_course(
    db: AsyncSession,
    student_id: UUID,
    course_id: UUID,
) -> Admission | None:
    result = await db.execute(
        select(Admission).where(
            Admission.student_id == student_id,
            Admission.course_id == course_id,
        )
    )
    return result.scalar_one_or_none()


async def get_accepted_for_student(db: AsyncSession, student_id: UUID) -> Admission | None:
    """The student's accepted admission, across every institution."""
    result = await db.execute(
        select(Admission).where(
            Admission.student_id == student_id,
            Admission.student_response == AdmissionResponse.ACCEPTED,
        )
    )
    return result.scalar_one_or_none()


async def list_for_student(db: AsyncSession, student_id: UUID) -> list[Admission]:
    result = await db.execute(
        select(Admission)
        .where(Admission.student_id == student_id)
        .order_by(Admission.offered_at.desc())
    )
    return list(result.scalars().all())


async def list_for_institution(
    db: AsyncSession,
    institution_id: UUID,
    *,
    course_id: UUID | None = None,
) -> list[Admission]:
    stmt = select(Admission).where(Admission.institution_id == institution_id)
    if course_id is not None:
        stmt = stmt.where(Admission.course_id == course_id)

    result = await db.execute(stmt.order_by(Admission.offered_at.desc()))
    return list(result.scalars().all())


async def set_response(
    db: AsyncSession,
    admission: Admission,
    response: AdmissionResponse,
    responded_at: datetime,
) -> Admission:
    """
    Record the student's answer.

    Raises:
        sqlalchemy.exc.IntegrityError: If this would be a second acceptance
    """
    admission.student_response = response
    admission.responded_at = responded_at
    await db.flush()
    return admission


async def response_counts(
    db: AsyncSession,
    institution_id: UUID | None = None,
) -> dict[str, int]:
    """Admission counts by student response, platform-wide or for one institution."""
    query = select(Admission.student_response, func.count(Admission.id)).group_by(
        Admission.student_response
    )
    if institution_id is not None:
        query = query.where(Admission.institution_id == institution_id)

    result = await db.execute(query)

    counts = {"offered": 0, "awaiting_response": 0, "accepted": 0, "declined": 0}
    for response, count in result.all():
        counts["offered"] += count
        if response is None:
            counts["awaiting_response"] += count
        else:
            counts[response.value] += count
    return counts
