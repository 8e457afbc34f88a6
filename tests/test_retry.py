import errno
import io

import pytest
import requests
import responses

from kes.retry import (
    NoEndpointError,
    RetryClient,
    TemporaryNetworkError,
    is_temporary,
    retry_body,
)

URL = "https://kes.example.com/v1/status"


class _Unseekable:
    def read(self, size=-1):
        return b""


def _client() -> RetryClient:
    client = RetryClient()
    client.min_retry_delay = 0
    client.max_random_delay = 0
    return client


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def test_retry_body_none():
    assert retry_body(None) is None


def test_retry_body_seekable_stream():
    body = retry_body(io.BytesIO(b""))
    assert body.seekable() is True
    assert body.read() == b""


def test_retry_body_bytes():
    body = retry_body(b"abc")
    assert body.read() == b"abc"
    body.seek(0)
    assert body.read() == b"abc"


def test_retry_body_unseekable_raises():
    with pytest.raises(TypeError):
        retry_body(_Unseekable())


@pytest.mark.parametrize(
    "err, temporary",
    [
        (None, False),
        (EOFError(), False),
        (requests.exceptions.InvalidURL(""), False),
        (requests.ConnectionError(ValueError("unknown network unknown")), False),
        (requests.ConnectionError(EOFError()), True),
        (requests.exceptions.ReadTimeout(), True),
        (OSError(errno.ECONNRESET, "reset"), True),
        (ConnectionRefusedError(errno.ECONNREFUSED, "refused"), False),
    ],
)
def test_is_temporary(err, temporary):
    assert is_temporary(err) is temporary


def test_temporary_network_error_is_not_temporary():
    err = TemporaryNetworkError("GET", URL, requests.ConnectionError(EOFError()))
    assert is_temporary(err) is False
    assert "Temporary network error" in str(err)


def test_do_retries_service_unavailable(mocked):
    mocked.add(responses.GET, URL, status=503)
    mocked.add(responses.GET, URL, status=200, body="ok")
    response = _client().get(URL)
    assert response.status_code == 200
    assert response.text == "ok"
    assert len(mocked.calls) == 2


def test_do_gives_up_after_two_retries(mocked):
    mocked.add(responses.GET, URL, status=503)
    response = _client().get(URL)
    assert response.status_code == 503
    assert len(mocked.calls) == 3


def test_do_wraps_persistent_temporary_error(mocked):
    mocked.add(responses.GET, URL, body=requests.ConnectionError(EOFError()))
    with pytest.raises(TemporaryNetworkError) as info:
        _client().get(URL)
    assert info.value.method == "GET"
    assert info.value.url == URL
    assert len(mocked.calls) == 3


def test_do_recovers_from_temporary_error(mocked):
    mocked.add(responses.GET, URL, body=requests.ConnectionError(EOFError()))
    mocked.add(responses.GET, URL, status=200)
    assert _client().get(URL).status_code == 200
    assert len(mocked.calls) == 2


def test_do_does_not_retry_permanent_error(mocked):
    mocked.add(responses.GET, URL, body=requests.ConnectionError(ValueError("refused")))
    with pytest.raises(requests.ConnectionError):
        _client().get(URL)
    assert len(mocked.calls) == 1


def test_post_resends_whole_body_and_content_type(mocked):
    bodies = []
    content_types = []

    def callback(request):
        body = request.body
        bodies.append(body.read() if hasattr(body, "read") else body)
        content_types.append(request.headers["Content-Type"])
        status = 503 if len(bodies) == 1 else 200
        return status, {}, ""

    mocked.add_callback(responses.POST, URL, callback=callback)
    response = _client().post(URL, "application/json", io.BytesIO(b"data"))
    assert response.status_code == 200
    assert bodies == [b"data", b"data"]
    assert content_types == ["application/json", "application/json"]


def test_send_without_endpoints_raises():
    with pytest.raises(NoEndpointError):
        _client().send("GET", [], "/v1/status")


def test_send_joins_endpoint_and_path(mocked):
    mocked.add(responses.GET, URL, status=200, body="up")
    response = _client().send("GET", ["https://kes.example.com/"], "/v1/status")
    assert response.text == "up"


def test_send_falls_back_to_other_endpoint(mocked):
    mocked.add(
        responses.GET,
        "https://a.example.com/v1/status",
        body=requests.ConnectionError(ValueError("down")),
    )
    mocked.add(responses.GET, "https://b.example.com/v1/status", status=200)
    response = _client().send(
        "GET", ["https://a.example.com", "https://b.example.com"], "/v1/status"
    )
    assert response.status_code == 200


def test_send_stops_at_first_answer(mocked):
    mocked.add(responses.GET, "https://a.example.com/v1/status", status=200, body="a")
    mocked.add(responses.GET, "https://b.example.com/v1/status", status=200, body="b")
    response = _client().send(
        "GET", ["https://a.example.com", "https://b.example.com"], "/v1/status"
    )
    assert response.status_code == 200
    assert response.text in ("a", "b")
    assert len(mocked.calls) == 1


def test_send_raises_last_error_when_all_fail(mocked):
    for host in ("a", "b"):
        mocked.add(
            responses.GET,
            f"https://{host}.example.com/v1/status",
            body=requests.ConnectionError(ValueError("down")),
        )
    with pytest.raises(requests.ConnectionError):
        _client().send("GET", ["https://a.example.com", "https://b.example.com"], "/v1/status")
    assert len(mocked.calls) == 2