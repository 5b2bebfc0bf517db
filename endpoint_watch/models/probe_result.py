"""ProbeResult model - append-only probe history."""
from sqlalchemy import Column, Index, Integer, String

from ..database import Base


class ProbeResult(Base):
    """Outcome of one successful HTTP round trip.

    Keyed by URL rather than endpoint id so history outlives the
    configuration row it came from.
    """

    __tablename__ = "probe_results"
    __table_args__ = (
        Index("ix_probe_results_url_checked_at", "endpoint_url", "checked_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    endpoint_url = Column(String, nullable=False)
    checked_at = Column(Integer, nullable=False)  # unix seconds
    status = Column(Integer, nullable=False)  # HTTP status code
