"""
API request/response models for the extraction service.

All models use Pydantic v2 for validation and serialization. Response
fields are snake_case in Python and camelCase on the wire.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr


# --- Requests ---

class ExtractRequest(BaseModel):
    """Request body for value extraction."""
    text: StrictStr = Field(
        ...,
        description="Free-form text to score",
        json_schema_extra={"example": "I love nature and helping others."},
    )


# --- Responses ---

class PersistedInfo(BaseModel):
    """Identifier and timestamp of the stored extraction."""
    model_config = ConfigDict(populate_by_name=True)

    id: Any
    created_at: Any = Field(alias="createdAt")


class ExtractResponse(BaseModel):
    """Diagnostic envelope: each step reports its own outcome."""
    model_config = ConfigDict(populate_by_name=True)

    output: str
    parse_error: str | None = Field(default=None, alias="parseError")
    persisted: PersistedInfo | None = None
    persist_error: str | None = Field(default=None, alias="persistError")


class HealthResponse(BaseModel):
    """System health status."""
    status: str  # "healthy" or "degraded"
    model: str
    endpoint_configured: bool
    store: str


class ErrorResponse(BaseModel):
    """Error response body."""
    error: str


class UpstreamErrorResponse(BaseModel):
    """Error response body for a failed inference call."""
    error: str
    status: int | None = None
    details: str = ""
