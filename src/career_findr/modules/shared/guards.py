"""
Ownership guards.

One check for every owner-scoped mutation: reviewing an application
(owner = listing owner), withdrawing it or answering an admission offer
(owner = student), issuing offers and closing listings (owner = listing
owner).
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from career_findr.modules.shared.errors import ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def authorize_owner(
    actor_id: UUID,
    resource: T,
    owner_of: Callable[[T], UUID],
    *,
    resource_name: str = "resource",
) -> T:
    """
    Ensure ``actor_id`` owns ``resource``.

    Raises:
        ForbiddenError: If the extracted owner differs from the actor
    """
    if owner_of(resource) != actor_id:
        logger.warning(f"Ownership check failed: actor {actor_id} does not own this {resource_name}")
        raise ForbiddenError(f"You are not authorized to modify this {resource_name}")
    return resource


async def load_owned(
    db: AsyncSession,
    loader: Callable[[AsyncSession, UUID], Awaitable[T | None]],
    resource_id: UUID,
    actor_id: UUID,
    owner_of: Callable[[T], UUID],
    *,
    resource_name: str,
) -> T:
    """
    Load a resource and check ownership in one step.

    Raises:
        NotFoundError: If the loader returns None
        ForbiddenError: If the actor is not the owner
    """
    resource = await loader(db, resource_id)
    if resource is None:
        raise NotFoundError(resource_name.title(), resource_id)
    return authorize_owner(actor_id, resource, owner_of, resource_name=resource_name)
