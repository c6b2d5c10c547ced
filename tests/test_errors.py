"""Error classification tests."""

import httpx

from realtime_eventsource.shared.errors import (
    ConnectionTimeoutError,
    EventSourceError,
    HTTPStatusError,
    StreamEndedError,
    TransportError,
    classify_error,
)

REQUEST = httpx.Request("GET", "http://stream.test/events")


def test_connect_error_becomes_transport_error():
    original = httpx.ConnectError("refused", request=REQUEST)

    error = classify_error(original)

    assert isinstance(error, TransportError)
    assert error.__cause__ is original


def test_timeouts_become_connection_timeout_errors():
    for exc in (httpx.ReadTimeout("slow", request=REQUEST), httpx.ConnectTimeout("slow", request=REQUEST)):
        assert isinstance(classify_error(exc), ConnectionTimeoutError)


def test_os_error_becomes_transport_error():
    assert isinstance(classify_error(ConnectionResetError("reset")), TransportError)


def test_httpx_status_error_keeps_status_code():
    response = httpx.Response(401, request=REQUEST)
    original = httpx.HTTPStatusError("unauthorized", request=REQUEST, response=response)

    error = classify_error(original)

    assert isinstance(error, HTTPStatusError)
    assert error.status_code == 401
    assert "401" in str(error)


def test_event_source_errors_pass_through_unchanged():
    ended = StreamEndedError("server closed the stream")

    assert classify_error(ended) is ended


def test_unknown_exceptions_are_wrapped():
    error = classify_error(RuntimeError("weird"))

    assert type(error) is EventSourceError
    assert isinstance(error.__cause__, RuntimeError)
