"""
Unit tests for the applications service layer.

These tests cover:
- Submission rules (closed listings, per-institution cap, duplicates, capacity)
- Review decisions per target type and re-review conflicts
- Capacity checks at acceptance
- Withdrawal rules
- Best-effort notifications
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from factories import make_application, make_listing, make_user
from sqlalchemy.exc import IntegrityError

from career_findr.modules.applications.models import ApplicationStatus
from career_findr.modules.applications.schemas import ApplicationCreate, ReviewDecision
from career_findr.modules.applications.service import (
    ApplicationAlreadyReviewedError,
    CannotWithdrawError,
    DuplicateApplicationError,
    InstitutionApplicationLimitError,
    InvalidReviewStatusError,
    ListingClosedError,
    get_application,
    review_application,
    submit_application,
    summarize,
    withdraw_application,
)
from career_findr.modules.catalog.models import ListingStatus, ListingType
from career_findr.modules.shared.errors import (
    CapacityExceededError,
    ForbiddenError,
    NotFoundError,
)
from career_findr.modules.users.models import UserRole

SERVICE = "career_findr.modules.applications.service"


def _request(listing, target_type=ListingType.COURSE) -> ApplicationCreate:
    return ApplicationCreate(target_type=target_type, target_id=listing.id)


class TestSubmitApplication:
    """Tests for submit_application."""

    @pytest.mark.asyncio
    async def test_submit_course_application_success(self, mock_db, student):
        """A first application to an open course is created and committed."""
        listing = make_listing(ListingType.COURSE, capacity=5)
        created = make_application(student_id=student.id, target_id=listing.id)

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_users.get_user = AsyncMock(return_value=student)
            mock_catalog.get_listing = AsyncMock(return_value=listing)
            mock_repo.count_course_applications_to_institution = AsyncMock(return_value=1)
            mock_repo.get_for_student_and_target = AsyncMock(return_value=None)
            mock_repo.count_for_target = AsyncMock(return_value=4)
            mock_repo.create = AsyncMock(return_value=created)

            result = await submit_application(mock_db, student.id, _request(listing))

            assert result is created
            mock_users.get_user.assert_called_once_with(mock_db, student.id, for_update=True)
            kwargs = mock_repo.create.call_args.kwargs
            assert kwargs["owner_id"] == listing.owner_id
            assert kwargs["target_type"] == ListingType.COURSE
            mock_db.commit.assert_called_once()
            mock_db.rollback.assert_not_called()

    @pytest.mark.asyncio
    async def test_third_course_application_to_same_institution_rejected(self, mock_db, student):
        """The per-institution cap counts every course at that institution."""
        listing = make_listing(ListingType.COURSE)

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_users.get_user = AsyncMock(return_value=student)
            mock_catalog.get_listing = AsyncMock(return_value=listing)
            mock_repo.count_course_applications_to_institution = AsyncMock(return_value=2)
            mock_repo.create = AsyncMock()

            with pytest.raises(InstitutionApplicationLimitError) as exc_info:
                await submit_application(mock_db, student.id, _request(listing))

            assert exc_info.value.error_code == "INSTITUTION_APPLICATION_LIMIT"
            assert exc_info.value.status_code == 409
            mock_repo.create.assert_not_called()
            mock_db.commit.assert_not_called()
            mock_db.rollback.assert_called_once()

    @pytest.mark.asyncio
    async def test_job_applications_are_not_capped_per_company(self, mock_db, student):
        listing = make_listing(ListingType.JOB, capacity=None)

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_users.get_user = AsyncMock(return_value=student)
            mock_catalog.get_listing = AsyncMock(return_value=listing)
            mock_repo.count_course_applications_to_institution = AsyncMock(return_value=99)
            mock_repo.get_for_student_and_target = AsyncMock(return_value=None)
            mock_repo.count_for_target = AsyncMock(return_value=0)
            mock_repo.create = AsyncMock(return_value=make_application(target_type=ListingType.JOB))

            await submit_application(mock_db, student.id, _request(listing, ListingType.JOB))

            mock_repo.count_course_applications_to_institution.assert_not_called()
            mock_repo.count_for_target.assert_not_called()
            mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_duplicate_application_rejected(self, mock_db, student):
        listing = make_listing(ListingType.COURSE)

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_users.get_user = AsyncMock(return_value=student)
            mock_catalog.get_listing = AsyncMock(return_value=listing)
            mock_repo.count_course_applications_to_institution = AsyncMock(return_value=1)
            mock_repo.get_for_student_and_target = AsyncMock(
                return_value=make_application(student_id=student.id, target_id=listing.id)
            )
            mock_repo.create = AsyncMock()

            with pytest.raises(DuplicateApplicationError) as exc_info:
                await submit_application(mock_db, student.id, _request(listing))

            assert exc_info.value.error_code == "DUPLICATE_APPLICATION"
            mock_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_maps_integrity_error_to_conflict(self, mock_db, student):
        """Losing the race on the unique constraint surfaces as a duplicate."""
        listing = make_listing(ListingType.COURSE)

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_users.get_user = AsyncMock(return_value=student)
            mock_catalog.get_listing = AsyncMock(return_value=listing)
            mock_repo.count_course_applications_to_institution = AsyncMock(return_value=0)
            mock_repo.get_for_student_and_target = AsyncMock(return_value=None)
            mock_repo.count_for_target = AsyncMock(return_value=0)
            mock_repo.create = AsyncMock(
                side_effect=IntegrityError("INSERT", {}, Exception("uq_applications_student_target"))
            )

            with pytest.raises(DuplicateApplicationError):
                await submit_application(mock_db, student.id, _request(listing))

            mock_db.rollback.assert_called_once()
            mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_full_course_refuses_new_applications(self, mock_db, student):
        listing = make_listing(ListingType.COURSE, capacity=1)

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_users.get_user = AsyncMock(return_value=student)
            mock_catalog.get_listing = AsyncMock(return_value=listing)
            mock_repo.count_course_applications_to_institution = AsyncMock(return_value=0)
            mock_repo.get_for_student_and_target = AsyncMock(return_value=None)
            mock_repo.count_for_target = AsyncMock(return_value=1)
            mock_repo.create = AsyncMock()

            with pytest.raises(CapacityExceededError):
                await submit_application(mock_db, student.id, _request(listing))

            mock_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_closed_listing_rejected(self, mock_db, student):
        listing = make_listing(ListingType.COURSE, status=ListingStatus.CLOSED)

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_users.get_user = AsyncMock(return_value=student)
            mock_catalog.get_listing = AsyncMock(return_value=listing)
            mock_repo.create = AsyncMock()

            with pytest.raises(ListingClosedError):
                await submit_application(mock_db, student.id, _request(listing))

            mock_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_listing_past_deadline_rejected(self, mock_db, student):
        listing = make_listing(
            ListingType.JOB, deadline=datetime.now(UTC) - timedelta(hours=1), capacity=None
        )

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_users.get_user = AsyncMock(return_value=student)
            mock_catalog.get_listing = AsyncMock(return_value=listing)
            mock_repo.create = AsyncMock()

            with pytest.raises(ListingClosedError):
                await submit_application(mock_db, student.id, _request(listing, ListingType.JOB))

    @pytest.mark.asyncio
    async def test_non_student_cannot_apply(self, mock_db, company):
        listing = make_listing(ListingType.JOB)

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
        ):
            mock_users.get_user = AsyncMock(return_value=company)
            mock_catalog.get_listing = AsyncMock()

            with pytest.raises(ForbiddenError):
                await submit_application(mock_db, company.id, _request(listing, ListingType.JOB))

            mock_catalog.get_listing.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_listing_is_not_found(self, mock_db, student):
        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
        ):
            mock_users.get_user = AsyncMock(return_value=student)
            mock_catalog.get_listing = AsyncMock(side_effect=NotFoundError("Course", uuid4()))

            with pytest.raises(NotFoundError):
                await submit_application(mock_db, student.id, _request(make_listing()))

            mock_db.rollback.assert_called_once()


class TestReviewApplication:
    """Tests for review_application."""

    @pytest.mark.asyncio
    async def test_accept_course_application(self, mock_db, institute, student):
        """Accepting under capacity updates status, commits and notifies."""
        listing = make_listing(ListingType.COURSE, owner_id=institute.id, capacity=2)
        application = make_application(
            student_id=student.id, owner_id=institute.id, target_id=listing.id
        )
        updated = make_application(
            student_id=student.id,
            owner_id=institute.id,
            target_id=listing.id,
            status=ApplicationStatus.ACCEPTED,
        )

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.notify", new_callable=AsyncMock) as mock_notify,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=application)
            mock_users.ensure_account_approved = AsyncMock(return_value=institute)
            mock_users.get_user = AsyncMock(return_value=student)
            mock_catalog.get_listing = AsyncMock(return_value=listing)
            mock_repo.count_for_target = AsyncMock(return_value=1)
            mock_repo.update_status = AsyncMock(return_value=updated)
            mock_notify.return_value = True

            result = await review_application(
                mock_db, institute.id, application.id, ReviewDecision.ACCEPTED, "Welcome"
            )

            assert result.status == ApplicationStatus.ACCEPTED
            mock_repo.get_by_id.assert_called_once_with(mock_db, application.id, for_update=True)
            mock_catalog.get_listing.assert_called_once_with(
                mock_db, ListingType.COURSE, listing.id, for_update=True
            )
            assert mock_repo.update_status.call_args.kwargs["reviewed_by"] == institute.id
            assert mock_repo.update_status.call_args.kwargs["remarks"] == "Welcome"
            mock_db.commit.assert_called_once()
            mock_notify.assert_called_once()
            assert mock_notify.call_args.args[1] == "application_status"

    @pytest.mark.asyncio
    async def test_accept_beyond_capacity_rejected(self, mock_db, institute):
        """With capacity N, the (N+1)th acceptance fails and nothing is written."""
        listing = make_listing(ListingType.COURSE, owner_id=institute.id, capacity=1)
        application = make_application(owner_id=institute.id, target_id=listing.id)

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=application)
            mock_users.ensure_account_approved = AsyncMock(return_value=institute)
            mock_catalog.get_listing = AsyncMock(return_value=listing)
            mock_repo.count_for_target = AsyncMock(return_value=1)
            mock_repo.update_status = AsyncMock()

            with pytest.raises(CapacityExceededError) as exc_info:
                await review_application(
                    mock_db, institute.id, application.id, ReviewDecision.ACCEPTED
                )

            assert exc_info.value.error_code == "CAPACITY_EXCEEDED"
            mock_repo.update_status.assert_not_called()
            mock_db.rollback.assert_called_once()

    @pytest.mark.asyncio
    async def test_rejecting_skips_capacity_check(self, mock_db, institute):
        listing = make_listing(ListingType.COURSE, owner_id=institute.id, capacity=1)
        application = make_application(owner_id=institute.id, target_id=listing.id)

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.notify", new_callable=AsyncMock),
        ):
            mock_repo.get_by_id = AsyncMock(return_value=application)
            mock_users.ensure_account_approved = AsyncMock(return_value=institute)
            mock_users.get_user = AsyncMock(return_value=make_user())
            mock_catalog.get_listing = AsyncMock(return_value=listing)
            mock_repo.count_for_target = AsyncMock(return_value=1)
            mock_repo.update_status = AsyncMock(return_value=application)

            await review_application(mock_db, institute.id, application.id, ReviewDecision.REJECTED)

            mock_repo.count_for_target.assert_not_called()
            mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_re_review_of_terminal_application_conflicts(self, mock_db, institute):
        application = make_application(owner_id=institute.id, status=ApplicationStatus.ACCEPTED)

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=application)
            mock_users.ensure_account_approved = AsyncMock(return_value=institute)
            mock_repo.update_status = AsyncMock()

            with pytest.raises(ApplicationAlreadyReviewedError) as exc_info:
                await review_application(
                    mock_db, institute.id, application.id, ReviewDecision.REJECTED
                )

            assert exc_info.value.status_code == 409
            mock_repo.update_status.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "decision", [ReviewDecision.SHORTLISTED, ReviewDecision.INTERVIEWING]
    )
    async def test_job_only_decisions_are_invalid_for_courses(self, mock_db, institute, decision):
        application = make_application(owner_id=institute.id, target_type=ListingType.COURSE)

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=application)
            mock_users.ensure_account_approved = AsyncMock(return_value=institute)

            with pytest.raises(InvalidReviewStatusError) as exc_info:
                await review_application(
                    mock_db, institute.id, application.id, decision
                )

            assert exc_info.value.status_code == 400
            assert exc_info.value.error_code == "INVALID_REVIEW_STATUS"

    @pytest.mark.asyncio
    async def test_shortlisted_job_application_can_be_reviewed_again(self, mock_db, company):
        listing = make_listing(ListingType.JOB, owner_id=company.id, capacity=None)
        application = make_application(
            owner_id=company.id,
            target_type=ListingType.JOB,
            target_id=listing.id,
            status=ApplicationStatus.SHORTLISTED,
        )

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.notify", new_callable=AsyncMock),
        ):
            mock_repo.get_by_id = AsyncMock(return_value=application)
            mock_users.ensure_account_approved = AsyncMock(return_value=company)
            mock_users.get_user = AsyncMock(return_value=make_user())
            mock_catalog.get_listing = AsyncMock(return_value=listing)
            mock_repo.update_status = AsyncMock(return_value=application)

            await review_application(
                mock_db, company.id, application.id, ReviewDecision.INTERVIEWING
            )

            assert mock_repo.update_status.call_args.args[2] == ApplicationStatus.INTERVIEWING
            mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_reviewer_must_own_the_listing(self, mock_db, institute):
        application = make_application(owner_id=uuid4())

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=application)
            mock_repo.update_status = AsyncMock()

            with pytest.raises(ForbiddenError):
                await review_application(
                    mock_db, institute.id, application.id, ReviewDecision.ACCEPTED
                )

            mock_repo.update_status.assert_not_called()
            mock_db.rollback.assert_called_once()

    @pytest.mark.asyncio
    async def test_missing_application_is_not_found(self, mock_db, institute):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(NotFoundError) as exc_info:
                await review_application(mock_db, institute.id, uuid4(), ReviewDecision.ACCEPTED)

            assert exc_info.value.error_code == "APPLICATION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_fail_review(self, mock_db, institute):
        listing = make_listing(ListingType.COURSE, owner_id=institute.id)
        application = make_application(owner_id=institute.id, target_id=listing.id)

        with (
            patch(f"{SERVICE}.user_service") as mock_users,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.notify", new_callable=AsyncMock) as mock_notify,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=application)
            mock_users.ensure_account_approved = AsyncMock(return_value=institute)
            mock_users.get_user = AsyncMock(return_value=make_user())
            mock_catalog.get_listing = AsyncMock(return_value=listing)
            mock_repo.update_status = AsyncMock(return_value=application)
            mock_notify.side_effect = RuntimeError("smtp down")

            result = await review_application(
                mock_db, institute.id, application.id, ReviewDecision.REJECTED
            )

            assert result is application
            mock_db.commit.assert_called_once()


class TestWithdrawApplication:
    """Tests for withdraw_application."""

    @pytest.mark.asyncio
    async def test_withdraw_pending_application(self, mock_db, student):
        application = make_application(student_id=student.id)

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=application)
            mock_repo.update_status = AsyncMock(return_value=application)

            await withdraw_application(mock_db, student.id, application.id)

            args = mock_repo.update_status.call_args
            assert args.args[2] == ApplicationStatus.WITHDRAWN
            assert args.kwargs["withdrawn_at"] is not None
            mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_cannot_withdraw_reviewed_application(self, mock_db, student):
        application = make_application(student_id=student.id, status=ApplicationStatus.REJECTED)

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=application)
            mock_repo.update_status = AsyncMock()

            with pytest.raises(CannotWithdrawError) as exc_info:
                await withdraw_application(mock_db, student.id, application.id)

            assert exc_info.value.error_code == "CANNOT_WITHDRAW"
            mock_repo.update_status.assert_not_called()

    @pytest.mark.asyncio
    async def test_only_applicant_can_withdraw(self, mock_db, student):
        application = make_application(student_id=uuid4())

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=application)
            mock_repo.update_status = AsyncMock()

            with pytest.raises(ForbiddenError):
                await withdraw_application(mock_db, student.id, application.id)

            mock_repo.update_status.assert_not_called()


class TestReadViews:
    """Tests for application read helpers."""

    def test_summarize_counts_every_status(self):
        applications = [
            make_application(status=ApplicationStatus.PENDING),
            make_application(status=ApplicationStatus.PENDING),
            make_application(status=ApplicationStatus.ACCEPTED),
        ]

        summary = summarize(applications)

        assert summary["total"] == 3
        assert summary["pending"] == 2
        assert summary["accepted"] == 1
        assert summary["withdrawn"] == 0

    @pytest.mark.asyncio
    async def test_get_application_visible_to_owner(self, mock_db, institute):
        application = make_application(owner_id=institute.id)

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=application)

            result = await get_application(
                mock_db, institute.id, UserRole.INSTITUTE, application.id
            )

            assert result is application

    @pytest.mark.asyncio
    async def test_get_application_hidden_from_other_students(self, mock_db, student):
        application = make_application()

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=application)

            with pytest.raises(ForbiddenError):
                await get_application(mock_db, student.id, UserRole.STUDENT, application.id)

    @pytest.mark.asyncio
    async def test_admin_can_view_any_application(self, mock_db):
        application = make_application()

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=application)

            result = await get_application(mock_db, uuid4(), UserRole.ADMIN, application.id)

            assert result is application
