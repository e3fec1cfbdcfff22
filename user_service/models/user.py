"""
User Service — User SQLAlchemy Model
======================================

What:  ORM model for the `users` table.
Who:   Written by POST /users, read by GET /users through UserService.
       `Database.connect()` creates the table from this definition.

Table Design:
    - id:   integer primary key assigned by the store (autoincrement)
    - name: non-unique, indexed
    Rows are never updated or deleted by this service.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from user_service.database import Base


class User(Base):
    """
    A single user row.

    Query Patterns:
        - List users:  SELECT id, name FROM users ORDER BY id
        - Create user: INSERT INTO users (name) VALUES (:name) RETURNING id
    """

    __tablename__ = "users"

    # ── Primary Key ───────────────────────────────────────────────────────
    # Assigned by the store so concurrent inserts never collide
    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Unique identifier generated by the store",
    )

    # ── Name ──────────────────────────────────────────────────────────────
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Display name; duplicates allowed",
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.name!r}>"
