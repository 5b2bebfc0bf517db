"""Prober service - performs a single HTTP GET against an endpoint."""
import logging
from typing import Optional

import httpx

from ..errors import ProbeError

logger = logging.getLogger(__name__)


class Prober:
    """Issue one GET per call and report the status code.

    A fresh client is opened for every probe, so concurrent monitor loops
    never share connection state. No retries: the caller simply tries again
    on its next tick.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        verify: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.verify = verify
        self.transport = transport

    async def probe(self, url: str) -> int:
        """GET the URL and return its HTTP status code.

        Any status code counts as a completed probe; only transport failures
        and unusable URLs are errors.

        Raises:
            ProbeError: on invalid URLs, DNS failures, refused connections,
                timeouts and other transport errors
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                verify=self.verify,
                transport=self.transport,
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            raise ProbeError(url, "Request timeout") from e
        except httpx.ConnectError as e:
            raise ProbeError(url, f"Connection error: {e}") from e
        except httpx.UnsupportedProtocol as e:
            raise ProbeError(url, f"Invalid URL: {e}") from e
        except httpx.InvalidURL as e:
            raise ProbeError(url, f"Invalid URL: {e}") from e
        except httpx.HTTPError as e:
            raise ProbeError(url, f"{type(e).__name__}: {e}") from e

        logger.debug(f"GET {url} -> {response.status_code}")
        return response.status_code
