"""
Inkpost Backend: Shared Pydantic Schemas
==========================================

What:  Base model with camelCase aliases, plus the error and health payloads.
Why:   The JSON contract uses camelCase keys (firstName, createdAt) while the
       Python side stays snake_case. Every API schema inherits CamelModel so
       the mapping lives in one place.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts both snake_case and camelCase input; serializes camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(BaseModel):
    """
    Standardized error body for every non-2xx response.

    Example:
        {
            "error": "conflict",
            "statusCode": 409,
            "messages": ["Slug already in use"],
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error kind")
    statusCode: int = Field(description="HTTP status code, repeated for clients that lose it")
    messages: List[str] = Field(description="Human-readable error descriptions")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
