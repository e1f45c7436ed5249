# src/login_consent_bridge/relay.py

import typing

import httpx
from starlette.responses import Response

# Describe the upstream wire framing, not the decoded body we send on.
# The server recomputes them for the outbound response.
FRAMING_HEADERS = frozenset({
    "content-length",
    "content-encoding",
    "transfer-encoding",
    "connection",
    "keep-alive",
})

# Set by the ASGI server on every response; copying them would duplicate them.
SERVER_HEADERS = frozenset({"date", "server"})

SKIPPED_HEADERS = FRAMING_HEADERS | SERVER_HEADERS


def copy_headers(source: httpx.Headers, response: Response) -> None:
    """Append every upstream header, keeping repeated ones such as Set-Cookie."""
    for name, value in source.multi_items():
        if name.lower() in SKIPPED_HEADERS:
            continue
        response.headers.append(name, value)


def relay_response(
        upstream: httpx.Response,
        content: typing.Optional[bytes] = None,
        media_type: typing.Optional[str] = None,
) -> Response:
    """
    Copies an upstream response onto a new outbound response: headers first,
    then the status code, then the body.

    `content` replaces the upstream body and `media_type` overrides the copied
    Content-Type, for callers that rewrite what they relay.
    """
    body = upstream.content if content is None else content
    response = Response(content=body)
    copy_headers(upstream.headers, response)
    if media_type is not None:
        response.headers["content-type"] = media_type
    response.status_code = upstream.status_code
    return response
