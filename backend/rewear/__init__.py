"""
ReWear Backend — Application Package Initializer
================================================

What: Marks the `rewear` directory as a Python package.
Who:  Used by uvicorn (`uvicorn rewear.main:app`), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Swap settlement, moderation, stats
    ├─────────────────────────────────────┤
    │     Stores (Identity/Catalog/Ledger)│  ← find / insert / update / delete
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
