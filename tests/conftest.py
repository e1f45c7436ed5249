import json
import os
import typing

import httpx
import pytest

# Settings are read at import time
os.environ["IDENTITY_SERVICE_URL"] = "http://kratos.test/"
os.environ["AUTHZ_SERVICE_URL"] = "http://hydra.test"
os.environ["UPSTREAM_TIMEOUT_SECONDS"] = "2"
os.environ.pop("UI_DIST_DIR", None)

from fastapi.testclient import TestClient  # noqa: E402

from login_consent_bridge import main  # noqa: E402

KRATOS = "kratos.test"
HYDRA = "hydra.test"

Handler = typing.Callable[[httpx.Request], httpx.Response]


class FakeUpstreams:
    """Routes upstream calls by (method, host, path) and records every request."""

    def __init__(self):
        self.routes: typing.Dict[typing.Tuple[str, str, str], Handler] = {}
        self.calls: typing.List[httpx.Request] = []

    def add(self, method: str, host: str, path: str, handler: typing.Union[Handler, httpx.Response]):
        if isinstance(handler, httpx.Response):
            response = handler
            handler = lambda request: response  # noqa: E731
        self.routes[(method, host, path)] = handler

    def json(self, method: str, host: str, path: str, body: typing.Any, status_code: int = 200, headers=None):
        self.add(method, host, path, lambda request: httpx.Response(status_code, json=body, headers=headers))

    def calls_to(self, method: str, host: str, path: str) -> typing.List[httpx.Request]:
        return [
            call for call in self.calls
            if call.method == method and call.url.host == host and call.url.path == path
        ]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self.routes.get((request.method, request.url.host, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"error": "no route in fake upstream"})
        return handler(request)


def request_json(request: httpx.Request) -> typing.Any:
    return json.loads(request.content)


@pytest.fixture
def upstream():
    return FakeUpstreams()


@pytest.fixture
def client(upstream):
    transport = httpx.MockTransport(upstream.handle)
    main.app.dependency_overrides[main.get_upstream_transport] = lambda: transport
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()


@pytest.fixture
def session_body():
    return {
        "id": "sess-1",
        "active": True,
        "identity": {
            "id": "identity-123",
            "schema_id": "default",
            "traits": {"email": "ada@example.com", "name": {"first": "Ada"}},
        },
    }
