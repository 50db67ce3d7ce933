"""
Catalog Background Jobs

Closes active listings once their application deadline has passed, so
the stored status matches what submission already enforces.

- Idempotent: a closed listing is never selected again
- Each listing type is processed in its own session
- One failing batch doesn't stop the other
"""

import logging
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from career_findr.core.config import settings
from career_findr.core.database import async_session_maker
from career_findr.core.scheduler import register_job
from career_findr.modules.catalog import repository
from career_findr.modules.catalog.models import ListingType
from career_findr.modules.shared import utcnow

logger = logging.getLogger(__name__)

JOB_ID_CLOSE_EXPIRED_LISTINGS = "catalog_close_expired_listings"


async def _close_expired(listing_type: ListingType) -> list[str]:
    now = utcnow()
    async with async_session_maker() as db:
        expired = await repository.get_active_past_deadline(db, listing_type, now)
        for listing in expired:
            await repository.close(db, listing, now)
        await db.commit()
        return [str(listing.id) for listing in expired]


async def close_expired_listings() -> dict[str, Any]:
    """
    Close every active course and job whose deadline is in the past.

    Returns:
        Dict with the closed ids per listing type and any errors
    """
    logger.info("Starting expired listings job")

    results: dict[str, Any] = {"closed": {}, "errors": []}

    for listing_type in ListingType:
        try:
            closed = await _close_expired(listing_type)
            results["closed"][listing_type.value] = closed
            if closed:
                logger.info(f"Closed {len(closed)} expired {listing_type.value}(s)")
        except Exception as e:
            logger.error(f"Failed to close expired {listing_type.value} listings: {e}")
            results["errors"].append({"listing_type": listing_type.value, "error": str(e)})

    logger.info(
        f"Expired listings job complete: "
        f"{sum(len(ids) for ids in results['closed'].values())} closed, "
        f"{len(results['errors'])} errors"
    )
    return results


def register_catalog_jobs() -> None:
    """Register catalog jobs with the scheduler. Call before ``start_scheduler``."""
    register_job(
        job_id=JOB_ID_CLOSE_EXPIRED_LISTINGS,
        func=close_expired_listings,
        trigger=IntervalTrigger(minutes=settings.listing_expiry_interval_minutes),
    )
    logger.info("Catalog jobs registered")
