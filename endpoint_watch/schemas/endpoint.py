"""Endpoint schemas for validation and API responses."""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EndpointConfig(BaseModel):
    """A valid (url, interval) pair - what a monitor loop needs to run."""
    url: str = Field(..., min_length=1)
    interval_seconds: int = Field(..., gt=0)

    @field_validator("url")
    @classmethod
    def url_not_blank(cls, value: str) -> str:
        # Returned unchanged: results are keyed by the stored URL
        if not value.strip():
            raise ValueError("url must not be empty")
        return value


class EndpointCreate(EndpointConfig):
    """Schema for adding an endpoint."""


class EndpointResponse(BaseModel):
    """Schema for a configured endpoint row."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    interval_seconds: int


class EndpointStateResponse(BaseModel):
    """Current state of a URL: its intervals and latest probe result."""
    model_config = ConfigDict(from_attributes=True)

    url: str
    intervals: List[int]
    last_checked: Optional[int] = None  # unix seconds, None if never probed
    last_status: Optional[int] = None
    state: Literal["unchecked", "up", "down"]


class ProbeResultResponse(BaseModel):
    """Individual probe result record."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    endpoint_url: str
    checked_at: int
    status: int


class ResultsPage(BaseModel):
    """Paginated probe history."""
    items: List[ProbeResultResponse]
    total: int
    page: int
    per_page: int
    total_pages: int


class RemoveResponse(BaseModel):
    """Outcome of removing every row for a URL."""
    url: str
    removed: int
