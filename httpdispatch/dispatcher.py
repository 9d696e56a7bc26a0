"""
Request dispatch: build a request, optionally pause, race the HTTP call
against a timeout and decode the response body.

Usage::

    async with HttpxTransport() as transport:
        dispatcher = RequestDispatcher(transport)
        user = await dispatcher.get("https://api.example.com/users/1", decoder=User)
"""
import asyncio
import json as jsonlib
import time
from typing import Any, Awaitable, Callable, Optional, Union

import httpx
import structlog

from .decoders import decoder_for
from .errors import (
    ConstructionError,
    DecodeError,
    DispatchError,
    DispatchTimeout,
)
from .headers import HeadersInput, to_header_entries
from .models import (
    Duration,
    HeaderEntry,
    HttpMethod,
    Outcome,
    Request,
    as_seconds,
    parse_url,
)
from .transport import HttpxTransport, Transport

logger = structlog.get_logger(__name__)

DEFAULT_PAUSE = 0.0
DEFAULT_TIMEOUT = 5.0

Sleep = Callable[[float], Awaitable[Any]]
Body = Union[bytes, str, None]


def build_request(
    method: Union[HttpMethod, str],
    url: Union[str, httpx.URL],
    headers: HeadersInput = None,
    body: Body = None,
    json: Any = None,
) -> Request:
    """Build a Request, raising ConstructionError before any network activity."""
    try:
        method = HttpMethod(method.upper() if isinstance(method, str) else method)
    except ValueError as e:
        raise ConstructionError(f"Unsupported HTTP method {method!r}") from e

    parsed_url = parse_url(url)
    entries = to_header_entries(headers)

    if body is not None and json is not None:
        raise ConstructionError("Pass either body or json, not both")

    if json is not None:
        try:
            content = jsonlib.dumps(json).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise ConstructionError(f"json body is not serializable: {e}") from e
        if not any(entry.name.lower() == "content-type" for entry in entries):
            entries = entries + (HeaderEntry("Content-Type", "application/json"),)
    elif isinstance(body, str):
        content = body.encode("utf-8")
    elif body is None:
        content = b""
    elif isinstance(body, (bytes, bytearray)):
        content = bytes(body)
    else:
        raise ConstructionError(f"body must be bytes or str, got {type(body).__name__}")

    return Request(method=method, url=parsed_url, headers=entries, body=content)


def _discard_result(task: asyncio.Task):
    # Retrieve the abandoned call's exception so asyncio does not report it.
    if not task.cancelled():
        task.exception()


class RequestDispatcher:
    """Executes exactly one HTTP request per call with bounded total latency.

    The dispatcher holds no mutable state: concurrent calls share only the
    transport, whose connection pool is the transport's business.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        pause: Duration = DEFAULT_PAUSE,
        timeout: Duration = DEFAULT_TIMEOUT,
        sleep: Sleep = asyncio.sleep,
    ):
        self.transport = transport
        self.pause = self._check_pause(pause)
        self.timeout = self._check_timeout(timeout)
        self._sleep = sleep
        self._owns_transport = False

    @classmethod
    def from_config(cls, config, transport: Optional[Transport] = None) -> "RequestDispatcher":
        """Build a dispatcher whose default pause/timeout come from a Config.

        Without a transport, an HttpxTransport is created from the config's
        `transport` section and closed by aclose() / leaving `async with`.
        """
        owns_transport = transport is None
        if owns_transport:
            transport = HttpxTransport.from_config(config.transport)
        dispatch_config = config.dispatch
        dispatcher = cls(
            transport,
            pause=dispatch_config.get('pause', DEFAULT_PAUSE),
            timeout=dispatch_config.get('timeout', DEFAULT_TIMEOUT),
        )
        dispatcher._owns_transport = owns_transport
        return dispatcher

    async def aclose(self):
        if self._owns_transport:
            await self.transport.aclose()

    async def __aenter__(self) -> "RequestDispatcher":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    @staticmethod
    def _check_pause(pause: Duration) -> float:
        seconds = as_seconds(pause, "pause")
        if seconds < 0:
            raise ConstructionError(f"pause must be non-negative, got {seconds}")
        return seconds

    @staticmethod
    def _check_timeout(timeout: Duration) -> float:
        seconds = as_seconds(timeout, "timeout")
        if seconds <= 0:
            raise ConstructionError(f"timeout must be positive, got {seconds}")
        return seconds

    async def dispatch(
        self,
        method: Union[HttpMethod, str],
        url: Union[str, httpx.URL],
        headers: HeadersInput = None,
        body: Body = None,
        *,
        json: Any = None,
        pause: Optional[Duration] = None,
        timeout: Optional[Duration] = None,
        decoder=None,
    ):
        """Send one request and return the decoded body.

        Args:
            method: HTTP verb.
            url: Absolute http(s) URL.
            headers: Mapping (malformed pairs dropped with a warning) or a
                sequence of HeaderEntry / (name, value) pairs.
            body: Raw request body; str is encoded as UTF-8.
            json: JSON-serializable body, sent as application/json.
            pause: Delay before the network call starts.
            timeout: Upper bound on the network call, measured after the pause.
            decoder: Decoder callable, a target type, or None for text.

        Raises:
            ConstructionError: Malformed input, before any pause or network activity.
            TransportError: The HTTP call failed.
            DispatchTimeout: The call did not resolve within ``timeout``.
            DecodeError: The body could not be decoded.
        """
        request = build_request(method, url, headers, body, json)
        pause_s = self.pause if pause is None else self._check_pause(pause)
        timeout_s = self.timeout if timeout is None else self._check_timeout(timeout)
        decode = decoder_for(decoder)

        if pause_s > 0:
            logger.debug("request_paused", method=request.method.value, url=str(request.url), pause=pause_s)
            await self._sleep(pause_s)

        raw = await self._race(request, timeout_s)

        try:
            return decode(raw)
        except DecodeError as e:
            e.request = request
            error = e
        except Exception as e:
            error = DecodeError(f"{type(e).__name__}: {e}", status_code=raw.status_code,
                                content_type=raw.content_type, request=request)
            error.__cause__ = e

        logger.warning("response_decode_failed",
                       method=request.method.value,
                       url=str(request.url),
                       status_code=error.status_code,
                       content_type=error.content_type,
                       error=str(error))
        raise error

    async def _race(self, request: Request, timeout: float):
        """Run the transport call against a timer; whichever finishes first wins."""
        started = time.monotonic()
        logger.debug("request_dispatched", method=request.method.value, url=str(request.url), timeout=timeout)

        send_task = asyncio.ensure_future(self.transport.send(request))
        timer_task = asyncio.ensure_future(self._sleep(timeout))
        try:
            await asyncio.wait({send_task, timer_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            # Also reached when the caller itself is cancelled.
            if not send_task.done():
                send_task.cancel()
                send_task.add_done_callback(_discard_result)
            timer_task.cancel()

        # A failing scheduler is not a timeout.
        timer_error = None
        if timer_task.done() and not timer_task.cancelled():
            timer_error = timer_task.exception()
        if timer_error is not None and not send_task.done():
            raise timer_error

        if not send_task.done() or send_task.cancelled():
            logger.warning("request_timed_out",
                           method=request.method.value,
                           url=str(request.url),
                           timeout=timeout)
            raise DispatchTimeout(
                f"{request.method.value} {request.url} timed out after {timeout}s",
                timeout=timeout,
                request=request,
            )

        exc = send_task.exception()
        if exc is not None:
            logger.warning("request_failed",
                           method=request.method.value,
                           url=str(request.url),
                           error=str(exc))
            raise exc

        raw = send_task.result()
        logger.debug("response_received",
                     method=request.method.value,
                     url=str(request.url),
                     status_code=raw.status_code,
                     elapsed=round(time.monotonic() - started, 4))
        return raw

    async def attempt(self, method, url, headers: HeadersInput = None, body: Body = None, **kwargs) -> Outcome:
        """Like dispatch, but return an Outcome instead of raising dispatch failures.

        ConstructionError is still raised: it is a caller bug, not an outcome.
        """
        try:
            value = await self.dispatch(method, url, headers, body, **kwargs)
        except DispatchError as e:
            return Outcome(error=e)
        return Outcome(value=value)

    async def get(self, url, headers: HeadersInput = None, *, pause=None, timeout=None, decoder=None):
        return await self.dispatch(HttpMethod.GET, url, headers, pause=pause, timeout=timeout, decoder=decoder)

    async def post(self, url, headers: HeadersInput = None, body: Body = None, *, json=None,
                   pause=None, timeout=None, decoder=None):
        return await self.dispatch(HttpMethod.POST, url, headers, body, json=json,
                                   pause=pause, timeout=timeout, decoder=decoder)

    async def put(self, url, headers: HeadersInput = None, body: Body = None, *, json=None,
                  pause=None, timeout=None, decoder=None):
        return await self.dispatch(HttpMethod.PUT, url, headers, body, json=json,
                                   pause=pause, timeout=timeout, decoder=decoder)

    async def delete(self, url, headers: HeadersInput = None, *, pause=None, timeout=None, decoder=None):
        return await self.dispatch(HttpMethod.DELETE, url, headers, pause=pause, timeout=timeout, decoder=decoder)


async def dispatch(method, url, headers: HeadersInput = None, body: Body = None, *,
                   transport: Optional[Transport] = None, **kwargs):
    """One-shot dispatch. Without an explicit transport a short-lived
    HttpxTransport is opened for this request and closed afterwards."""
    if transport is not None:
        return await RequestDispatcher(transport).dispatch(method, url, headers, body, **kwargs)

    # Fail on malformed input before opening a client.
    headers = to_header_entries(headers)
    build_request(method, url, headers, body, kwargs.get('json'))
    async with HttpxTransport() as owned:
        return await RequestDispatcher(owned).dispatch(method, url, headers, body, **kwargs)


async def get(url, headers: HeadersInput = None, *, pause=DEFAULT_PAUSE, timeout=DEFAULT_TIMEOUT,
              decoder=None, transport: Optional[Transport] = None):
    return await dispatch(HttpMethod.GET, url, headers, pause=pause, timeout=timeout,
                          decoder=decoder, transport=transport)


async def post(url, headers: HeadersInput = None, body: Body = None, *, json=None, pause=DEFAULT_PAUSE,
               timeout=DEFAULT_TIMEOUT, decoder=None, transport: Optional[Transport] = None):
    return await dispatch(HttpMethod.POST, url, headers, body, json=json, pause=pause, timeout=timeout,
                          decoder=decoder, transport=transport)


async def put(url, headers: HeadersInput = None, body: Body = None, *, json=None, pause=DEFAULT_PAUSE,
              timeout=DEFAULT_TIMEOUT, decoder=None, transport: Optional[Transport] = None):
    return await dispatch(HttpMethod.PUT, url, headers, body, json=json, pause=pause, timeout=timeout,
                          decoder=decoder, transport=transport)


async def delete(url, headers: HeadersInput = None, *, pause=DEFAULT_PAUSE, timeout=DEFAULT_TIMEOUT,
                 decoder=None, transport: Optional[Transport] = None):
    return await dispatch(HttpMethod.DELETE, url, headers, pause=pause, timeout=timeout,
                          decoder=decoder, transport=transport)
