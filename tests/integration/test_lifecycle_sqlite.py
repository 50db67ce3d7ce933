"""
End-to-end lifecycle tests against a real SQLite database (aiosqlite).

Exercises the services together with the real repositories, unique
constraints and the partial unique index on accepted admissions.
Concurrent cases run two sessions on the same database file through
``asyncio.gather``.
"""

import asyncio
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from career_findr.core.database import Base
from career_findr.modules.admissions import repository as admission_repository
from career_findr.modules.admissions import service as admission_service
from career_findr.modules.admissions.models import Admission, AdmissionResponse
from career_findr.modules.admissions.service import AdmissionAlreadyAcceptedError
from career_findr.modules.applications import service as application_service
from career_findr.modules.applications.models import ApplicationStatus
from career_findr.modules.applications.schemas import ApplicationCreate, ReviewDecision
from career_findr.modules.applications.service import (
    DuplicateApplicationError,
    InstitutionApplicationLimitError,
)
from career_findr.modules.catalog import service as catalog_service
from career_findr.modules.catalog.models import ListingType
from career_findr.modules.catalog.schemas import CourseCreate
from career_findr.modules.shared import utcnow
from career_findr.modules.shared.errors import CapacityExceededError, LifecycleError
from career_findr.modules.users.models import UserRole
from career_findr.modules.users.repository import UserRepository


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'lifecycle.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


async def _user(db: AsyncSession, role: UserRole, name: str):
    user = await UserRepository.create(
        db,
        email=f"{name}@example.com",
        full_name=name,
        role=role,
        is_verified=True,
        is_approved=True,
    )
    await db.commit()
    return user.id


async def _course(db: AsyncSession, institution_id, title: str, seats: int):
    course = await catalog_service.create_course(
        db, institution_id, CourseCreate(title=title, seats=seats, fee=Decimal("0"))
    )
    return course.id


def _apply(course_id) -> ApplicationCreate:
    return ApplicationCreate(target_type=ListingType.COURSE, target_id=course_id)


@pytest.mark.asyncio
async def test_application_to_admission_scenario(db):
    """
    s1 applies to c1 and c2 at i1, a third course at i1 is refused, i1
    accepts and offers c1, s1 accepts, and a later offer from i2 cannot
    also be accepted.
    """
    s1 = await _user(db, UserRole.STUDENT, "s1")
    i1 = await _user(db, UserRole.INSTITUTE, "i1")
    i2 = await _user(db, UserRole.INSTITUTE, "i2")

    c1 = await _course(db, i1, "c1", seats=1)
    c2 = await _course(db, i1, "c2", seats=5)
    c3 = await _course(db, i1, "c3", seats=5)
    d1 = await _course(db, i2, "d1", seats=5)

    first = await application_service.submit_application(db, s1, _apply(c1))
    first_id = first.id
    await application_service.submit_application(db, s1, _apply(c2))

    with pytest.raises(InstitutionApplicationLimitError):
        await application_service.submit_application(db, s1, _apply(c3))

    accepted = await application_service.review_application(
        db, i1, first_id, ReviewDecision.ACCEPTED
    )
    assert accepted.status == ApplicationStatus.ACCEPTED

    [offer] = await admission_service.issue_admission_offers(db, i1, c1, [s1])
    offer_id = offer.id
    assert offer.student_response is None

    responded = await admission_service.respond_to_admission(db, s1, offer_id, accept=True)
    assert responded.student_response == AdmissionResponse.ACCEPTED

    other = await application_service.submit_application(db, s1, _apply(d1))
    other_id = other.id
    await application_service.review_application(db, i2, other_id, ReviewDecision.ACCEPTED)
    [second_offer] = await admission_service.issue_admission_offers(db, i2, d1, [s1])
    second_offer_id = second_offer.id

    with pytest.raises(AdmissionAlreadyAcceptedError):
        await admission_service.respond_to_admission(db, s1, second_offer_id, accept=True)

    admissions, summary = await admission_service.list_student_admissions(db, s1)
    assert summary == {"total": 2, "awaiting_response": 1, "accepted": 1, "declined": 0}
    still_accepted = await admission_repository.get_accepted_for_student(db, s1)
    assert still_accepted.id == offer_id


@pytest.mark.asyncio
async def test_capacity_and_duplicates(db):
    s1 = await _user(db, UserRole.STUDENT, "s1")
    s2 = await _user(db, UserRole.STUDENT, "s2")
    s3 = await _user(db, UserRole.STUDENT, "s3")
    i1 = await _user(db, UserRole.INSTITUTE, "i1")
    c1 = await _course(db, i1, "c1", seats=1)

    a1 = (await application_service.submit_application(db, s1, _apply(c1))).id
    a2 = (await application_service.submit_application(db, s2, _apply(c1))).id

    with pytest.raises(DuplicateApplicationError):
        await application_service.submit_application(db, s1, _apply(c1))

    await application_service.review_application(db, i1, a1, ReviewDecision.ACCEPTED)

    with pytest.raises(CapacityExceededError):
        await application_service.review_application(db, i1, a2, ReviewDecision.ACCEPTED)

    with pytest.raises(CapacityExceededError):
        await application_service.submit_application(db, s3, _apply(c1))

    assert await catalog_service.get_available_seats(db, c1) == 0


@pytest.mark.asyncio
async def test_offers_skip_students_without_accepted_application(db):
    s1 = await _user(db, UserRole.STUDENT, "s1")
    s2 = await _user(db, UserRole.STUDENT, "s2")
    i1 = await _user(db, UserRole.INSTITUTE, "i1")
    c1 = await _course(db, i1, "c1", seats=5)

    a1 = (await application_service.submit_application(db, s1, _apply(c1))).id
    await application_service.submit_application(db, s2, _apply(c1))
    await application_service.review_application(db, i1, a1, ReviewDecision.ACCEPTED)

    created = await admission_service.issue_admission_offers(db, i1, c1, [s1, s2])
    assert [a.student_id for a in created] == [s1]

    again = await admission_service.issue_admission_offers(db, i1, c1, [s1])
    assert again == []


@pytest.mark.asyncio
async def test_partial_index_rejects_second_accepted_admission(db):
    """The database refuses a second accepted admission even without the service."""
    s1 = await _user(db, UserRole.STUDENT, "s1")
    i1 = await _user(db, UserRole.INSTITUTE, "i1")
    c1 = await _course(db, i1, "c1", seats=5)
    c2 = await _course(db, i1, "c2", seats=5)

    for course_id in (c1, c2):
        db.add(
            Admission(
                student_id=s1,
                course_id=course_id,
                institution_id=i1,
                application_id=course_id,
                student_response=AdmissionResponse.ACCEPTED,
                offered_at=utcnow(),
            )
        )

    with pytest.raises(IntegrityError):
        await db.flush()

    await db.rollback()


async def _outcome(session_maker, call, *args, **kwargs) -> str:
    """Run one service call in its own session; return "ok" or the error code."""
    async with session_maker() as session:
        try:
            await call(session, *args, **kwargs)
        except LifecycleError as e:
            return e.error_code
    return "ok"


async def _offered_by_two_institutions(db: AsyncSession, student_id):
    offer_ids = []
    for name in ("i1", "i2"):
        institution_id = await _user(db, UserRole.INSTITUTE, name)
        course_id = await _course(db, institution_id, f"{name}-course", seats=5)
        application = await application_service.submit_application(
            db, student_id, _apply(course_id)
        )
        application_id = application.id
        await application_service.review_application(
            db, institution_id, application_id, ReviewDecision.ACCEPTED
        )
        [offer] = await admission_service.issue_admission_offers(
            db, institution_id, course_id, [student_id]
        )
        offer_ids.append(offer.id)
    return offer_ids


@pytest.mark.asyncio
async def test_concurrent_identical_submissions_only_one_succeeds(session_maker, db):
    s1 = await _user(db, UserRole.STUDENT, "s1")
    i1 = await _user(db, UserRole.INSTITUTE, "i1")
    c1 = await _course(db, i1, "c1", seats=5)

    outcomes = await asyncio.gather(
        _outcome(session_maker, application_service.submit_application, s1, _apply(c1)),
        _outcome(session_maker, application_service.submit_application, s1, _apply(c1)),
    )

    assert sorted(outcomes) == ["DUPLICATE_APPLICATION", "ok"]

    applications, _ = await application_service.list_student_applications(db, s1)
    assert len(applications) == 1


@pytest.mark.asyncio
async def test_concurrent_acceptances_only_one_succeeds(session_maker, db):
    s1 = await _user(db, UserRole.STUDENT, "s1")
    first_offer, second_offer = await _offered_by_two_institutions(db, s1)

    outcomes = await asyncio.gather(
        _outcome(session_maker, admission_service.respond_to_admission, s1, first_offer, True),
        _outcome(session_maker, admission_service.respond_to_admission, s1, second_offer, True),
    )

    assert sorted(outcomes) == ["ADMISSION_ALREADY_ACCEPTED", "ok"]

    async with session_maker() as session:
        _, summary = await admission_service.list_student_admissions(session, s1)
    assert summary["accepted"] == 1
    assert summary["awaiting_response"] == 1


@pytest.mark.asyncio
async def test_owner_stats_count_only_own_admissions(db):
    s1 = await _user(db, UserRole.STUDENT, "s1")
    await _offered_by_two_institutions(db, s1)
    i1 = (await UserRepository.get_by_email(db, "i1@example.com")).id

    [offer] = (await admission_service.list_institution_admissions(db, i1))[0]
    offer_id = offer.id
    await admission_service.respond_to_admission(db, s1, offer_id, accept=True)

    stats = await application_service.get_owner_stats(db, i1, ListingType.COURSE)

    assert stats["total_listings"] == 1
    assert stats["accepted_applications"] == 1
    assert stats["admissions_offered"] == 1
    assert stats["admissions_accepted"] == 1
