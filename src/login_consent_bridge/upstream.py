# src/login_consent_bridge/upstream.py

import logging
import typing

import httpx
from pydantic import BaseModel, ValidationError

from .config import Settings
from .errors import IntegrationError, UpstreamError
from .models import (
    AcceptConsentRequest,
    AcceptLoginRequest,
    CompletedRequest,
    ConsentRequest,
    LoginFlowParams,
    Session,
    UpdateLoginFlowBody,
)

logger = logging.getLogger("login_consent_bridge.upstream")

ModelT = typing.TypeVar("ModelT", bound=BaseModel)


# --- Debug hooks (UPSTREAM_DEBUG) ---

async def _log_request(request: httpx.Request) -> None:
    logger.debug("UPSTREAM: -> %s %s", request.method, request.url)


async def _log_response(response: httpx.Response) -> None:
    await response.aread()
    logger.debug(
        "UPSTREAM: <- %s %s %s %s",
        response.request.method, response.request.url, response.status_code, response.text,
    )


def new_http_client(
        base_url: str,
        settings: Settings,
        transport: typing.Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Builds a fresh client for one upstream. Redirects are returned to the
    caller instead of being followed so they can be relayed to the browser.
    """
    event_hooks = {}
    if settings.UPSTREAM_DEBUG:
        event_hooks = {"request": [_log_request], "response": [_log_response]}
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        follow_redirects=False,
        event_hooks=event_hooks,
        transport=transport,
    )


def _params(**values: typing.Any) -> typing.Dict[str, str]:
    params = {}
    for key, value in values.items():
        if isinstance(value, bool):
            params[key] = "true" if value else "false"
        elif value:
            params[key] = str(value)
    return params


def decode(operation: str, model: typing.Type[ModelT], response: httpx.Response) -> ModelT:
    try:
        return model.model_validate_json(response.content)
    except ValidationError as e:
        raise IntegrationError(operation, f"unexpected response body: {e}") from e


class _UpstreamClient:
    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def _execute(self, operation: str, method: str, url: str, **kwargs: typing.Any) -> httpx.Response:
        try:
            response = await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError(operation, cause=e) from e
        if response.status_code >= 300:
            raise UpstreamError(operation, response=response)
        return response

    async def aclose(self) -> None:
        await self.http.aclose()


class IdentityClient(_UpstreamClient):
    """Kratos public API: sessions, login flows and self-service errors."""

    async def to_session(self, cookie: str) -> typing.Tuple[Session, httpx.Response]:
        response = await self._execute(
            "ToSession", "GET", "/sessions/whoami",
            headers={"Cookie": cookie, "Accept": "application/json"},
        )
        return decode("ToSession", Session, response), response

    async def create_browser_login_flow(self, params: LoginFlowParams, cookie: str) -> httpx.Response:
        return await self._execute(
            "CreateBrowserLoginFlow", "GET", "/self-service/login/browser",
            params=_params(
                refresh=params.refresh,
                aal=params.aal,
                return_to=params.return_to,
                login_challenge=params.login_challenge,
            ),
            headers={"Cookie": cookie, "Accept": "application/json"},
        )

    async def update_login_flow(self, flow: str, body: UpdateLoginFlowBody, cookie: str) -> httpx.Response:
        return await self._execute(
            "UpdateLoginFlow", "POST", "/self-service/login",
            params=_params(flow=flow),
            json=body.model_dump(exclude_none=True),
            headers={"Cookie": cookie, "Accept": "application/json"},
        )

    async def get_flow_error(self, error_id: str) -> httpx.Response:
        return await self._execute(
            "GetFlowError", "GET", "/self-service/errors",
            params=_params(id=error_id),
            headers={"Accept": "application/json"},
        )


class AuthorizationClient(_UpstreamClient):
    """Hydra admin API: login and consent requests."""

    async def accept_login_request(self, login_challenge: str, accept: AcceptLoginRequest) -> httpx.Response:
        return await self._execute(
            "AcceptLoginRequest", "PUT", "/oauth2/auth/requests/login/accept",
            params=_params(login_challenge=login_challenge),
            json=accept.model_dump(),
        )

    async def get_consent_request(self, consent_challenge: str) -> typing.Tuple[ConsentRequest, httpx.Response]:
        response = await self._execute(
            "GetConsentRequest", "GET", "/oauth2/auth/requests/consent",
            params=_params(consent_challenge=consent_challenge),
        )
        return decode("GetConsentRequest", ConsentRequest, response), response

    async def accept_consent_request(
            self, consent_challenge: str, accept: AcceptConsentRequest
    ) -> typing.Tuple[CompletedRequest, httpx.Response]:
        response = await self._execute(
            "AcceptConsentRequest", "PUT", "/oauth2/auth/requests/consent/accept",
            params=_params(consent_challenge=consent_challenge),
            json=accept.model_dump(),
        )
        return decode("AcceptConsentRequest", CompletedRequest, response), response
