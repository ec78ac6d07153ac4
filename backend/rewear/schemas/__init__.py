"""
ReWear Backend — Pydantic Request/Response Schemas
====================================================

API contracts, kept separate from the ORM models so that internal fields
(password hashes, owner snapshots used for authorization) are never exposed
by accident.
"""
