"""
User Service — User Operations
================================

What:  The two database operations the API exposes, each wrapped in its
       own span.
How:   A `UserService` is built once by `create_app()` with the tracer from
       the Telemetry handle, stored on `app.state.user_service`, and handed
       to route handlers through `get_user_service`. Each call receives the
       request's session, so the service holds no per-request state.

Span names match what the collector dashboards filter on:
    list_users()  → "Fetch Users"
    create_user() → "Create User"
"""

import logging
from typing import List

from fastapi import Request
from opentelemetry.trace import Status, StatusCode, Tracer
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from user_service.exceptions import DatabaseError
from user_service.models.user import User
from user_service.schemas.user import UserResponse

logger = logging.getLogger(__name__)

DEFAULT_USER_NAME = "John Doe"


class UserService:
    """
    Traced operations on the users table.

    Error Handling Strategy:
        SQLAlchemy errors are recorded on the active span, logged, and
        re-raised as DatabaseError (generic client message, 500). Nothing
        is retried.
    """

    def __init__(self, tracer: Tracer):
        self.tracer = tracer

    async def list_users(self, db: AsyncSession) -> List[UserResponse]:
        """
        Return every row of the users table.

        A full table scan ordered by id; an empty table yields an empty list.

        Raises:
            DatabaseError: the query failed (→ 500)
        """
        with self.tracer.start_as_current_span("Fetch Users", record_exception=False) as span:
            try:
                result = await db.execute(select(User).order_by(User.id))
                users = result.scalars().all()
            except SQLAlchemyError as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, type(e).__name__))
                logger.error("Database error listing users: %s", str(e), exc_info=True)
                raise DatabaseError(
                    message="Could not retrieve users. Please try again.",
                    context={"error_type": type(e).__name__},
                ) from e

            span.set_attribute("users.count", len(users))
            return [UserResponse.model_validate(user) for user in users]

    async def create_user(self, db: AsyncSession, name: str = DEFAULT_USER_NAME) -> UserResponse:
        """
        Insert one row and return it with the id the store assigned.

        The insert is committed inside the span, so the span covers the full
        write. Names are not unique; every call creates a new row.

        Raises:
            DatabaseError: the insert or commit failed (→ 500)
        """
        with self.tracer.start_as_current_span("Create User", record_exception=False) as span:
            user = User(name=name)
            try:
                db.add(user)
                await db.commit()
            except SQLAlchemyError as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, type(e).__name__))
                logger.error("Database error creating user: %s", str(e), exc_info=True)
                raise DatabaseError(
                    message="Could not create user. Please try again.",
                    context={"error_type": type(e).__name__},
                ) from e

            span.set_attribute("users.id", user.id)
            logger.info("User created: %s", user.id)
            return UserResponse.model_validate(user)


def get_user_service(request: Request) -> UserService:
    """FastAPI dependency returning the service built by create_app()."""
    return request.app.state.user_service
