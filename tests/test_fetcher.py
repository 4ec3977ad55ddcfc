import io

import pytest
import requests
from tenacity import wait_none

import callscribe.fetcher as fetcher
from callscribe import Cancelled, FetchError, RequestContext


class FakeResponse:
    def __init__(self, status_code=200, data=b"RIFF"):
        self.status_code = status_code
        self.raw = io.BytesIO(data)
        self.closed = False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    monkeypatch.setattr(fetcher, "RETRY_WAIT", wait_none())


def test_fetch_streams_response(monkeypatch):
    calls = []

    def fake_get(url, **kwargs):
        calls.append((url, kwargs))
        return FakeResponse()

    monkeypatch.setattr(fetcher.requests, "get", fake_get)

    response = fetcher.fetch_recording("https://example.com/call.wav", RequestContext())

    assert response.raw.read() == b"RIFF"
    assert response.raw.decode_content is True
    assert calls == [("https://example.com/call.wav", {"stream": True, "timeout": fetcher.READ_TIMEOUT})]


def test_http_error_is_not_retried(monkeypatch):
    responses = []

    def fake_get(url, **kwargs):
        responses.append(FakeResponse(status_code=404))
        return responses[-1]

    monkeypatch.setattr(fetcher.requests, "get", fake_get)

    with pytest.raises(FetchError, match="unable to GET"):
        fetcher.fetch_recording("https://example.com/missing.wav", RequestContext())

    assert len(responses) == 1
    assert responses[0].closed


def test_connection_errors_are_retried(monkeypatch):
    attempts = []

    def fake_get(url, **kwargs):
        attempts.append(url)
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(fetcher.requests, "get", fake_get)

    with pytest.raises(FetchError) as info:
        fetcher.fetch_recording("https://example.com/call.wav", RequestContext())

    assert len(attempts) == 3
    assert info.value.stage == "fetching"
    assert isinstance(info.value.cause, requests.ConnectionError)


def test_cancellation_stops_retries(monkeypatch):
    ctx = RequestContext()
    attempts = []

    def fake_get(url, **kwargs):
        attempts.append(url)
        ctx.cancel()
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(fetcher.requests, "get", fake_get)

    with pytest.raises(Cancelled) as info:
        fetcher.fetch_recording("https://example.com/call.wav", ctx)

    assert len(attempts) == 1
    assert info.value.stage == "fetching"
    assert "request cancelled" in str(info.value)


def test_each_attempt_gets_the_time_left(monkeypatch):
    timeouts = []

    def fake_get(url, **kwargs):
        timeouts.append(kwargs["timeout"])
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(fetcher.requests, "get", fake_get)

    with pytest.raises(FetchError):
        fetcher.fetch_recording("https://example.com/call.wav", RequestContext(timeout=30))

    assert len(timeouts) == 3
    assert all(0 < t <= 30 for t in timeouts)
    assert timeouts == sorted(timeouts, reverse=True)
