"""
User Service — UserService Unit Tests
=======================================

What:  Tests for the traced list/create operations.
How:   Mock DB sessions (no real database) and an in-memory span exporter.

What we test:
    ✅ list_users maps rows to UserResponse inside a "Fetch Users" span
    ✅ create_user adds, commits and returns the row inside a "Create User" span
    ✅ SQLAlchemy errors become DatabaseError and mark the span as failed
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from opentelemetry.trace import StatusCode
from sqlalchemy.exc import IntegrityError, OperationalError

from user_service.exceptions import DatabaseError
from user_service.models.user import User
from user_service.services.user_service import DEFAULT_USER_NAME, UserService


def _rows(*users):
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(users)
    return result


class TestListUsers:

    @pytest.fixture(autouse=True)
    def _service(self, telemetry):
        self.service = UserService(telemetry.tracer)

    @pytest.mark.asyncio
    async def test_empty_table(self, mock_db_session):
        mock_db_session.execute.return_value = _rows()

        result = await self.service.list_users(mock_db_session)

        assert result == []

    @pytest.mark.asyncio
    async def test_maps_rows(self, mock_db_session):
        mock_db_session.execute.return_value = _rows(
            User(id=1, name="John Doe"),
            User(id=2, name="John Doe"),
        )

        result = await self.service.list_users(mock_db_session)

        assert [(u.id, u.name) for u in result] == [(1, "John Doe"), (2, "John Doe")]
        mock_db_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_records_span(self, mock_db_session, span_exporter):
        mock_db_session.execute.return_value = _rows(User(id=1, name="John Doe"))

        await self.service.list_users(mock_db_session)

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "Fetch Users"
        assert span.attributes["users.count"] == 1
        assert span.status.status_code == StatusCode.UNSET

    @pytest.mark.asyncio
    async def test_query_failure_raises_database_error(self, mock_db_session, span_exporter):
        mock_db_session.execute = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection refused"))
        )

        with pytest.raises(DatabaseError) as exc_info:
            await self.service.list_users(mock_db_session)

        assert exc_info.value.context == {"error_type": "OperationalError"}
        (span,) = span_exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR
        assert [e.name for e in span.events] == ["exception"]


class TestCreateUser:

    @pytest.fixture(autouse=True)
    def _service(self, telemetry):
        self.service = UserService(telemetry.tracer)

    @staticmethod
    def _assign_id(session, user_id):
        """Simulate the store assigning a primary key on add()."""
        def _add(user):
            user.id = user_id
        session.add = MagicMock(side_effect=_add)

    @pytest.mark.asyncio
    async def test_creates_default_user(self, mock_db_session):
        self._assign_id(mock_db_session, 42)

        result = await self.service.create_user(mock_db_session)

        assert result.id == 42
        assert result.name == DEFAULT_USER_NAME == "John Doe"
        added = mock_db_session.add.call_args.args[0]
        assert isinstance(added, User)
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_records_span(self, mock_db_session, span_exporter):
        self._assign_id(mock_db_session, 3)

        await self.service.create_user(mock_db_session)

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "Create User"
        assert span.attributes["users.id"] == 3

    @pytest.mark.asyncio
    async def test_commit_failure_raises_database_error(self, mock_db_session, span_exporter):
        mock_db_session.commit = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, Exception("constraint"))
        )

        with pytest.raises(DatabaseError):
            await self.service.create_user(mock_db_session)

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "Create User"
        assert span.status.status_code == StatusCode.ERROR
