"""
Encapsulates the actual HTTP round trip on top of httpx.
Keeps network code separate from the dispatch race and decoding.
"""
from typing import Optional, Protocol

import httpx
import structlog

from .errors import TransportError
from .models import RawResponse, Request

logger = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = "httpdispatch/0.1"


class Transport(Protocol):
    async def send(self, request: Request) -> RawResponse:
        """Perform one network round trip, raising TransportError on failure."""
        ...


class HttpxTransport:
    """Transport backed by a pooled httpx.AsyncClient.

    When no client is passed in, one is created and owned by this transport
    and closed by aclose(); a caller-supplied client is left open.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        max_connections: int = 20,
        max_keepalive_connections: int = 10,
        follow_redirects: bool = True,
        max_redirects: int = 5,
        transport_timeout: Optional[float] = 30.0,
    ):
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                timeout=httpx.Timeout(transport_timeout),
                follow_redirects=follow_redirects,
                max_redirects=max_redirects,
                headers={'User-Agent': user_agent},
                limits=httpx.Limits(
                    max_connections=max_connections,
                    max_keepalive_connections=max_keepalive_connections,
                ),
            )
        self._client = client

    @classmethod
    def from_config(cls, transport_config: dict, client: Optional[httpx.AsyncClient] = None) -> "HttpxTransport":
        """Build a transport from the `transport` section of a Config."""
        return cls(
            client,
            user_agent=transport_config.get('user_agent', DEFAULT_USER_AGENT),
            max_connections=transport_config.get('max_connections', 20),
            max_keepalive_connections=transport_config.get('max_keepalive_connections', 10),
            follow_redirects=transport_config.get('follow_redirects', True),
            max_redirects=transport_config.get('max_redirects', 5),
            transport_timeout=transport_config.get('transport_timeout', 30.0),
        )

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def send(self, request: Request) -> RawResponse:
        try:
            response = await self._client.request(
                request.method.value,
                request.url,
                headers=[entry.as_tuple() for entry in request.headers],
                content=request.body or None,
            )
        except httpx.HTTPError as e:
            logger.warning("transport_error",
                           method=request.method.value,
                           url=str(request.url),
                           error_type=type(e).__name__,
                           error=str(e))
            raise TransportError(f"{type(e).__name__}: {e}", request=request) from e

        return RawResponse(
            status_code=response.status_code,
            headers=response.headers,
            content=response.content,
            url=response.url,
        )

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()
