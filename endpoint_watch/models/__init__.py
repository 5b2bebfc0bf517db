"""Database models."""
from .endpoint import Endpoint
from .probe_result import ProbeResult

__all__ = ["Endpoint", "ProbeResult"]
