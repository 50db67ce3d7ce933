"""
Search Service

Read-only listing and candidate search. A ``SearchIndex`` can be plugged
in with ``configure_search_index``; it returns matching ids and the store
supplies the records. With no index configured, or when the index fails,
searches fall back to store queries.
"""

import logging
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from career_findr.modules.catalog import repository as catalog_repository
from career_findr.modules.catalog import service as catalog_service
from career_findr.modules.catalog.models import JobType, ListingType
from career_findr.modules.users import service as user_service
from career_findr.modules.users.models import User
from career_findr.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

CANDIDATES = "candidates"


class SearchIndex(Protocol):
    """
    External full-text index.

    ``collection`` is a listing type value ("course", "job") or "candidates".
    Returns matching ids, best match first.
    """

    async def search(
        self, collection: str, query: str | None, filters: dict[str, Any]
    ) -> list[UUID]: ...


_index: SearchIndex | None = None


def configure_search_index(index: SearchIndex | None) -> None:
    global _index
    _index = index


def get_search_index() -> SearchIndex | None:
    return _index


async def _query_index(collection: str, query: str | None, filters: dict[str, Any]) -> list[UUID] | None:
    """Ids from the index, or None when the store should answer instead."""
    if _index is None:
        return None
    try:
        return await _index.search(collection, query, filters)
    except Exception as e:
        logger.warning(f"Search index failed for {collection}, falling back to store: {e}")
        return None


def _in_order(records: list, ids: list[UUID]) -> list:
    by_id = {record.id: record for record in records}
    return [by_id[id] for id in ids if id in by_id]


async def search_listings(
    db: AsyncSession,
    listing_type: ListingType,
    *,
    query: str | None = None,
    category: str | None = None,
    location: str | None = None,
    job_type: JobType | None = None,
) -> list[dict]:
    """
    Active listings matching the query, annotated with computed counts.

    Returns the same shape as ``catalog_service.annotate_listings``.
    """
    filters = {
        key: value
        for key, value in {
            "category": category,
            "location": location,
            "job_type": job_type.value if job_type else None,
        }.items()
        if value is not None
    }

    ids = await _query_index(listing_type.value, query, filters)
    if ids is None:
        return await catalog_service.browse_listings(
            db,
            listing_type,
            query=query,
            category=category,
            location=location,
            job_type=job_type,
        )

    listings = await catalog_repository.get_many(db, listing_type, ids)
    return await catalog_service.annotate_listings(db, listing_type, _in_order(listings, ids))


async def search_candidates(
    db: AsyncSession,
    *,
    skills: list[str] | None = None,
    location: str | None = None,
    education: str | None = None,
) -> list[User]:
    """Verified students matching the filters."""
    filters: dict[str, Any] = {}
    if skills:
        filters["skills"] = skills
    if location:
        filters["location"] = location
    if education:
        filters["education"] = education

    ids = await _query_index(CANDIDATES, None, filters)
    if ids is None:
        return await user_service.find_candidates(
            db, skills=skills, location=location, education=education
        )

    students = await UserRepository.get_students_by_ids(db, ids)
    return _in_order(students, ids)
