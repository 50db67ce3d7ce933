"""
Tests for the ownership guard and error conversion.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from career_findr.modules.shared.errors import (
    CapacityExceededError,
    ForbiddenError,
    NotFoundError,
    to_http_exception,
)
from career_findr.modules.shared.guards import authorize_owner, load_owned


class TestAuthorizeOwner:
    def test_owner_passes_through(self):
        owner_id = uuid4()
        resource = SimpleNamespace(owner_id=owner_id)

        assert authorize_owner(owner_id, resource, lambda r: r.owner_id) is resource

    def test_non_owner_forbidden(self):
        resource = SimpleNamespace(student_id=uuid4())

        with pytest.raises(ForbiddenError) as exc_info:
            authorize_owner(uuid4(), resource, lambda r: r.student_id, resource_name="admission")

        assert "admission" in exc_info.value.message
        assert exc_info.value.status_code == 403


class TestLoadOwned:
    @pytest.mark.asyncio
    async def test_missing_resource_not_found(self, mock_db):
        loader = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError) as exc_info:
            await load_owned(
                mock_db, loader, uuid4(), uuid4(), lambda r: r.owner_id, resource_name="course"
            )

        assert exc_info.value.error_code == "COURSE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_loads_and_checks(self, mock_db):
        actor_id, resource_id = uuid4(), uuid4()
        resource = SimpleNamespace(owner_id=actor_id)
        loader = AsyncMock(return_value=resource)

        result = await load_owned(
            mock_db, loader, resource_id, actor_id, lambda r: r.owner_id, resource_name="job"
        )

        assert result is resource
        loader.assert_called_once_with(mock_db, resource_id)


def test_to_http_exception_keeps_code_and_status():
    http_exc = to_http_exception(CapacityExceededError())

    assert http_exc.status_code == 409
    assert http_exc.detail == {"error": "CAPACITY_EXCEEDED", "message": "No seats available"}
