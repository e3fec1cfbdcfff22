"""ORM models. Importing this package registers every table on Base.metadata."""

from user_service.models.user import User

__all__ = ["User"]
