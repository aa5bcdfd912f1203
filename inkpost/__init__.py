"""
Inkpost Backend: Application Package
======================================

What: Blog backend serving users, posts and tags over HTTP.
Who:  Imported by uvicorn (`inkpost.main:app`), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, auth dependencies
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Slugs, tags, posts, users
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Services never open their own sessions: each call receives the request's
    AsyncSession, so a request is a single unit of work.
"""

__version__ = "1.0.0"
