"""An HTTP client that retries requests failing with temporary errors."""

from __future__ import annotations

import errno
import http.client
import io
import random
import time
from typing import Any, Iterator, Mapping

import requests


class NoEndpointError(ValueError):
    """No server endpoint was given."""

    def __init__(self) -> None:
        super().__init__("no server endpoint")


class TemporaryNetworkError(Exception):
    """A request kept failing with a temporary network error."""

    def __init__(self, method: str, url: str, error: BaseException) -> None:
        super().__init__(f'{method} "{url}": Temporary network error: {error}')
        self.method = method
        self.url = url
        self.error = error


def retry_body(body: Any) -> io.IOBase | None:
    """Return a seekable request body, so that a retry can send it again.

    ``None`` stays ``None``; bytes become an in-memory stream; a seekable
    stream is returned as is. Anything else raises :class:`TypeError`.
    """
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(body))
    seekable = getattr(body, "seekable", None)
    if callable(seekable) and seekable() and hasattr(body, "read"):
        return body
    raise TypeError("request cannot be retried: body is not seekable")


_TEMPORARY_ERRNOS = frozenset(
    {
        errno.EINTR,
        errno.EMFILE,
        errno.ENFILE,
        errno.ECONNRESET,
        errno.ECONNABORTED,
        errno.EAGAIN,
        errno.EWOULDBLOCK,
        errno.ETIMEDOUT,
    }
)

_TEMPORARY_TYPES = (
    requests.exceptions.Timeout,
    TimeoutError,
    ConnectionResetError,
    ConnectionAbortedError,
    EOFError,
    http.client.IncompleteRead,
    http.client.RemoteDisconnected,
)


def _causes(err: BaseException) -> Iterator[BaseException]:
    """Yield ``err`` and every exception it wraps, each once."""
    seen: set[int] = set()
    pending = [err]
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        nested = [current.__cause__, current.__context__, getattr(current, "reason", None)]
        nested.extend(current.args)
        pending.extend(item for item in nested if isinstance(item, BaseException))


def _is_temporary_cause(err: BaseException) -> bool:
    if isinstance(err, _TEMPORARY_TYPES):
        return True
    return isinstance(err, OSError) and err.errno in _TEMPORARY_ERRNOS


def is_temporary(err: BaseException | None) -> bool:
    """Report whether ``err`` is a network error worth retrying.

    Timeouts, resets and connections dropped mid-request count as temporary.
    ``None`` and errors that are not network errors do not.
    """
    if err is None:
        return False
    if not isinstance(err, (requests.RequestException, OSError)):
        return False
    return any(_is_temporary_cause(cause) for cause in _causes(err))


def _join(endpoint: str, path: str) -> str:
    return endpoint.rstrip("/") + "/" + path.lstrip("/")


class RetryClient:
    """Sends HTTP requests and retries those failing with temporary errors.

    A request that fails with a temporary error or a 503 response is sent
    again up to ``retries`` times, after a random delay of between
    ``min_retry_delay`` and ``min_retry_delay + max_random_delay`` seconds.
    """

    retries = 2
    min_retry_delay = 0.2
    max_random_delay = 0.8

    def __init__(self, session: requests.Session | None = None) -> None:
        self.session = session if session is not None else requests.Session()

    def send(
        self,
        method: str,
        endpoints: list[str],
        path: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> requests.Response:
        """Send the request to the endpoints, from a random one on, until one answers."""
        if not endpoints:
            raise NoEndpointError()
        stream = retry_body(body)
        start = random.randrange(len(endpoints))
        ordered = endpoints[start:] + endpoints[:start]

        error: Exception | None = None
        for attempt, endpoint in enumerate(ordered):
            if stream is not None and attempt > 0:
                stream.seek(0)
            try:
                return self.do(method, _join(endpoint, path), stream, headers)
            except requests.exceptions.InvalidURL:
                raise
            except (requests.RequestException, TemporaryNetworkError) as exc:
                error = exc
        assert error is not None
        raise error

    def get(self, url: str) -> requests.Response:
        """Send a GET request."""
        return self.do("GET", url)

    def post(self, url: str, content_type: str, body: Any) -> requests.Response:
        """Send a POST request with the given content type."""
        return self.do("POST", url, body, {"Content-Type": content_type})

    def do(
        self,
        method: str,
        url: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> requests.Response:
        """Send a request, retrying it a few times on temporary failures.

        Raises :class:`TemporaryNetworkError` if it still fails temporarily.
        """
        stream = retry_body(body)
        request_headers = dict(headers) if headers else None

        def attempt() -> tuple[requests.Response | None, requests.RequestException | None]:
            try:
                response = self.session.request(
                    method, url, data=stream, headers=request_headers
                )
            except requests.RequestException as exc:
                return None, exc
            return response, None

        retries = self.retries
        response, error = attempt()
        while retries > 0 and (
            is_temporary(error) or (response is not None and response.status_code == 503)
        ):
            time.sleep(self.min_retry_delay + random.random() * self.max_random_delay)
            retries -= 1
            if response is not None:
                response.close()
            if stream is not None:
                stream.seek(0)
            response, error = attempt()

        if error is not None:
            if is_temporary(error):
                raise TemporaryNetworkError(method, url, error) from error
            raise error
        assert response is not None
        return response