"""Pydantic schemas for validation and API request/response models."""
from .endpoint import (
    EndpointConfig,
    EndpointCreate,
    EndpointResponse,
    EndpointStateResponse,
    ProbeResultResponse,
    RemoveResponse,
    ResultsPage,
)

__all__ = [
    "EndpointConfig",
    "EndpointCreate",
    "EndpointResponse",
    "EndpointStateResponse",
    "ProbeResultResponse",
    "RemoveResponse",
    "ResultsPage",
]
