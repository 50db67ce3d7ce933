"""
Shared fixtures.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from factories import make_user

from career_findr.modules.users.models import UserRole


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.expunge = MagicMock()
    return db


@pytest.fixture
def student():
    return make_user(UserRole.STUDENT)


@pytest.fixture
def institute():
    return make_user(UserRole.INSTITUTE)


@pytest.fixture
def company():
    return make_user(UserRole.COMPANY)
