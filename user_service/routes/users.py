"""
User Service — Users Route Handlers
=====================================

What:  GET /users and POST /users.
How:   Both handlers take the per-request session (get_db_session) and the
       UserService built by create_app() (get_user_service). Neither reads
       a request body or query parameter.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from user_service.database import get_db_session
from user_service.schemas.user import ErrorResponse, UserResponse
from user_service.services.user_service import UserService, get_user_service

router = APIRouter(tags=["Users"])


@router.get(
    "/users",
    response_model=List[UserResponse],
    responses={
        200: {"description": "Every user in the table (possibly empty)"},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="List all users",
)
async def list_users(
    db: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
) -> List[UserResponse]:
    return await service.list_users(db)


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=200,
    responses={
        200: {"description": "The created user"},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Create a user",
    description="Inserts a new user named 'John Doe'. Every call creates a new row.",
)
async def create_user(
    db: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return await service.create_user(db)
