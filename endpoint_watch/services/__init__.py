"""Services for probing, scheduling and persistence."""
from .prober import Prober
from .scheduler import Clock, IntervalScheduler, LoopState
from .session import MonitoringSession
from .store import EndpointStore

__all__ = ["Prober", "Clock", "IntervalScheduler", "LoopState", "MonitoringSession", "EndpointStore"]
