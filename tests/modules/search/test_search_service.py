"""
Tests for search with and without an external index.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from factories import make_user

from career_findr.modules.catalog.models import ListingType
from career_findr.modules.search import service

SERVICE = "career_findr.modules.search.service"


class FakeIndex:
    def __init__(self, ids=None, error: Exception | None = None):
        self.ids = ids or []
        self.error = error
        self.calls = []

    async def search(self, collection, query, filters):
        self.calls.append((collection, query, filters))
        if self.error:
            raise self.error
        return self.ids


@pytest.fixture(autouse=True)
def reset_index():
    yield
    service.configure_search_index(None)


class TestSearchListings:
    @pytest.mark.asyncio
    async def test_falls_back_to_store_without_index(self, mock_db):
        with patch(f"{SERVICE}.catalog_service") as mock_catalog:
            mock_catalog.browse_listings = AsyncMock(return_value=[])

            await service.search_listings(mock_db, ListingType.COURSE, query="nursing")

            mock_catalog.browse_listings.assert_called_once()
            assert mock_catalog.browse_listings.call_args.kwargs["query"] == "nursing"

    @pytest.mark.asyncio
    async def test_uses_index_and_keeps_its_order(self, mock_db):
        first, second = uuid4(), uuid4()
        index = FakeIndex(ids=[second, first])
        service.configure_search_index(index)

        listings = [MagicMock(id=first), MagicMock(id=second)]

        with (
            patch(f"{SERVICE}.catalog_repository") as mock_repo,
            patch(f"{SERVICE}.catalog_service") as mock_catalog,
        ):
            mock_repo.get_many = AsyncMock(return_value=listings)
            mock_catalog.annotate_listings = AsyncMock(return_value=[])

            await service.search_listings(mock_db, ListingType.JOB, query="python", location="Accra")

            ordered = mock_catalog.annotate_listings.call_args.args[2]
            assert [item.id for item in ordered] == [second, first]
            assert index.calls == [("job", "python", {"location": "Accra"})]

    @pytest.mark.asyncio
    async def test_index_failure_falls_back(self, mock_db):
        service.configure_search_index(FakeIndex(error=ConnectionError("index down")))

        with patch(f"{SERVICE}.catalog_service") as mock_catalog:
            mock_catalog.browse_listings = AsyncMock(return_value=[])

            await service.search_listings(mock_db, ListingType.COURSE)

            mock_catalog.browse_listings.assert_called_once()


class TestSearchCandidates:
    @pytest.mark.asyncio
    async def test_falls_back_to_profile_filtering(self, mock_db):
        with patch(f"{SERVICE}.user_service") as mock_users:
            mock_users.find_candidates = AsyncMock(return_value=[])

            await service.search_candidates(mock_db, skills=["sql"])

            mock_users.find_candidates.assert_called_once_with(
                mock_db, skills=["sql"], location=None, education=None
            )

    @pytest.mark.asyncio
    async def test_index_ids_are_resolved_from_store(self, mock_db):
        student = make_user()
        service.configure_search_index(FakeIndex(ids=[uuid4(), student.id]))

        with patch(f"{SERVICE}.UserRepository") as mock_repo:
            mock_repo.get_students_by_ids = AsyncMock(return_value=[student])

            result = await service.search_candidates(mock_db, location="Monrovia")

            assert result == [student]
