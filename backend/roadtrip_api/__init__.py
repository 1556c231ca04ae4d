"""
Road Trip Planner Backend — Application Package Initializer
============================================================

What: Marks the `roadtrip_api` directory as a Python package.
Why:  Enables module imports like `from roadtrip_api.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Resources + Adapters)   │  ← Validation, ownership, caching
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes extract request data and delegate; services own every business
    rule (pagination, ownership, toggles, cache lookups) and can be tested
    without HTTP.
"""

__version__ = "1.0.0"
