"""Endpoint model - URLs being monitored."""
from sqlalchemy import Column, Integer, String, DateTime, func

from ..database import Base


class Endpoint(Base):
    """A monitored URL and its probing interval.

    URLs are not unique: the same URL may be configured twice with different
    intervals, and removal deletes every row for a URL.
    """

    __tablename__ = "endpoints"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String, nullable=False, index=True)
    interval_seconds = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
