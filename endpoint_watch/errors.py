"""Exception types shared by the prober, store and scheduler."""


class EndpointWatchError(Exception):
    """Base class for all endpoint-watch errors."""


class ProbeError(EndpointWatchError):
    """A probe could not complete an HTTP round trip."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class StoreError(EndpointWatchError):
    """Reading from or writing to the persistent store failed."""


class ConfigError(EndpointWatchError):
    """An endpoint row is malformed (empty URL or non-positive interval)."""
