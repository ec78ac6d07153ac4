"""
ReWear Backend — Shared Response Schemas
==========================================

What:  Error envelope, health check and admin stats payloads.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "insufficient_points",
            "message": "Insufficient points",
            "details": {"required": 75, "available": 40},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Health check response showing service and database status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


class StatsResponse(BaseModel):
    """Admin dashboard counters, recomputed on every request."""
    total_users: int
    total_items: int
    pending_items: int = Field(description="Listings still waiting for approval")
    total_swaps: int
    completed_swaps: int
