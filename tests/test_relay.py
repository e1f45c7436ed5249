"""Tests for copying upstream responses onto outbound responses."""

import httpx
import pytest

from login_consent_bridge import relay


@pytest.mark.parametrize("headers", [
    [],
    [("X-Request-Id", "r1")],
    [("Set-Cookie", "a=1; Path=/"), ("Set-Cookie", "b=2; Path=/"), ("Location", "/next")],
    [("Content-Type", "application/json"), ("Cache-Control", "no-store"), ("Vary", "Cookie")],
])
def test_headers_status_and_body_are_copied(headers):
    upstream = httpx.Response(303, headers=headers, content=b'{"ok": true}')

    response = relay.relay_response(upstream)

    assert response.status_code == 303
    assert response.body == b'{"ok": true}'
    copied = [(k.lower(), v) for k, v in response.headers.items() if k.lower() != "content-length"]
    assert copied == [(k.lower(), v) for k, v in headers]


def test_headers_are_set_before_status(monkeypatch):
    events = []
    original_copy = relay.copy_headers

    def recording_copy(source, response):
        events.append(("headers", response.status_code))
        original_copy(source, response)

    monkeypatch.setattr(relay, "copy_headers", recording_copy)
    upstream = httpx.Response(422, headers=[("X-Flow", "1")], content=b"{}")

    response = relay.relay_response(upstream)

    # the status is still the placeholder while headers are copied
    assert events == [("headers", 200)]
    assert response.status_code == 422


def test_framing_headers_are_recomputed():
    upstream = httpx.Response(
        200,
        headers=[("Content-Length", "999"), ("Transfer-Encoding", "chunked"), ("Connection", "close")],
        content=b"hello",
    )

    response = relay.relay_response(upstream)

    assert response.headers["content-length"] == "5"
    assert "transfer-encoding" not in response.headers
    assert "connection" not in response.headers


def test_content_and_media_type_overrides():
    upstream = httpx.Response(404, headers=[("Content-Type", "text/html")], content=b"<p>no</p>")

    response = relay.relay_response(upstream, content=b'{"id": "x"}', media_type="application/json")

    assert response.status_code == 404
    assert response.body == b'{"id": "x"}'
    assert response.headers.getlist("content-type") == ["application/json"]
    assert response.headers["content-length"] == str(len(b'{"id": "x"}'))


def test_server_owned_headers_are_not_duplicated():
    upstream = httpx.Response(
        200,
        headers=[
            ("Date", "Mon, 01 Jan 2024 00:00:00 GMT"),
            ("Server", "kratos"),
            ("Set-Cookie", "csrf_token=abc; Path=/"),
        ],
        content=b"{}",
    )

    response = relay.relay_response(upstream)

    assert "date" not in response.headers
    assert "server" not in response.headers
    assert response.headers["set-cookie"] == "csrf_token=abc; Path=/"
