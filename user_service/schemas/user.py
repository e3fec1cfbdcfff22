"""
User Service — Pydantic Response Schemas
==========================================

What:  The JSON shapes returned by the API.
How:   FastAPI serializes handler return values through these models and
       uses them to generate the OpenAPI document.

Neither endpoint accepts a request body, so there are no request models.
"""

from typing import Optional

from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    """
    What:  A single users row as returned by GET /users (array items) and
           POST /users (the created row).
    """
    id: int = Field(ge=0, description="Store-generated identifier")
    name: str = Field(description="User name")

    model_config = {"from_attributes": True}


class ErrorResponse(BaseModel):
    """
    Standard error body produced by the global exception handlers.

    Example:
        {
            "error": "server_error",
            "message": "An internal error occurred. Please try again later.",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    request_id: Optional[str] = Field(default=None, description="Correlation id of the failed request")
