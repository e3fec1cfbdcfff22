"""
User Service — Application Package Initializer
================================================

What: Marks the `user_service` directory as a Python package.
Who:  Imported by uvicorn (via `user_service.main:create_app`) and by pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │       Routes (GET/POST /users)      │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (UserService + spans)    │  ← one traced DB operation each
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │  Database handle │ Telemetry handle │  ← built once in create_app()
    └─────────────────────────────────────┘

    The database and telemetry handles are constructed by the entry point and
    stored on `app.state`; nothing below the routes reaches for a global.
"""

__version__ = "1.0.0"
