import httpx

from httpdispatch.transport import HttpxTransport


def make_transport(handler) -> HttpxTransport:
    """HttpxTransport whose client answers through httpx.MockTransport(handler)."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxTransport(client)
