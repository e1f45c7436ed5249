# src/login_consent_bridge/flows.py
"""
Login and consent orchestration.

Each procedure resolves one browser request from its query parameters and
cookies alone. Upstream failures are raised as `UpstreamError` and translated
into an HTTP status at the application boundary; nothing here writes a
partial response.
"""

import json
import logging
import typing

from pydantic import ValidationError
from starlette.responses import JSONResponse, Response

from .errors import UpstreamError, to_external_error
from .models import (
    AcceptConsentRequest,
    AcceptLoginRequest,
    LoginFlowParams,
    SelfServiceError,
    UpdateLoginFlowBody,
)
from .relay import relay_response
from .upstream import AuthorizationClient, IdentityClient, decode

logger = logging.getLogger("login_consent_bridge.flows")

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


def parse_refresh(raw: typing.Optional[str]) -> bool:
    """Absent or unparseable values mean False."""
    if raw in _TRUE_VALUES:
        return True
    if raw is not None and raw not in _FALSE_VALUES and raw != "":
        logger.info("FLOWS: ignoring unparseable refresh value %r, using false", raw)
    return False


Cookies = typing.List[typing.Tuple[str, str]]


def parse_cookie_headers(headers: typing.Iterable[str]) -> Cookies:
    """
    Splits Cookie header values into (name, value) pairs in wire order.
    Repeated names are all kept: browsers send one CSRF cookie per path/domain.
    """
    cookies = []
    for header in headers:
        for part in header.split(";"):
            part = part.strip()
            if not part:
                continue
            name, _, value = part.partition("=")
            name = name.strip()
            if name:
                cookies.append((name, value.strip()))
    return cookies


def cookies_to_string(cookies: Cookies) -> str:
    return "; ".join(f"{name}={value}" for name, value in cookies)


def parse_login_body(raw: bytes) -> UpdateLoginFlowBody:
    """
    Decodes a login method submission. Undecodable input is logged and
    replaced by the zero-valued body, which is still sent upstream.
    """
    try:
        data = json.loads(raw) if raw else {}
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return UpdateLoginFlowBody.model_validate(data)
    except (ValueError, ValidationError) as e:
        logger.warning("FLOWS: could not decode login body: %s", e)
        return UpdateLoginFlowBody()


async def initiate_login(
        identity: IdentityClient,
        authorization: AuthorizationClient,
        cookies: Cookies,
        session_cookie_name: str,
        login_challenge: str,
        aal: str = "",
        return_to: str = "",
        refresh: typing.Optional[str] = None,
) -> Response:
    cookie = cookies_to_string(cookies)

    # With a live session CreateBrowserLoginFlow refuses to start a new flow,
    # so the challenge is accepted straight away.
    if any(name == session_cookie_name for name, _ in cookies):
        session, _ = await identity.to_session(cookie)
        logger.info("FLOWS: session found for identity %s, accepting login challenge", session.identity.id)
        accepted = await authorization.accept_login_request(
            login_challenge, AcceptLoginRequest(subject=session.identity.id)
        )
        return relay_response(accepted)

    params = LoginFlowParams(
        aal=aal,
        return_to=return_to,
        login_challenge=login_challenge,
        refresh=parse_refresh(refresh),
    )
    created = await identity.create_browser_login_flow(params, cookie)
    return relay_response(created)


async def update_login(
        identity: IdentityClient,
        cookies: Cookies,
        flow: str,
        raw_body: bytes,
) -> Response:
    body = parse_login_body(raw_body)
    try:
        updated = await identity.update_login_flow(flow, body, cookies_to_string(cookies))
    except UpstreamError as e:
        # 422 means the flow continues: the UI re-renders with field errors.
        if e.status_code != 422:
            raise
        logger.info("FLOWS: login flow %s needs more input (422)", flow)
        updated = e.response
    return relay_response(updated)


async def lookup_error(identity: IdentityClient, error_id: str) -> Response:
    fetched = await identity.get_flow_error(error_id)
    self_service_error = decode("GetFlowError", SelfServiceError, fetched)
    external = to_external_error(self_service_error)
    content = external.model_dump_json().encode("utf-8")
    logger.info("FLOWS: self-service error %s: %s", external.id, external.reason)
    return relay_response(fetched, content=content, media_type="application/json")


async def accept_consent(
        identity: IdentityClient,
        authorization: AuthorizationClient,
        cookies: Cookies,
        consent_challenge: str,
) -> Response:
    # An active session is required before anything is granted.
    session, _ = await identity.to_session(cookies_to_string(cookies))
    for key, value in session.identity.traits.items():
        logger.info("FLOWS: trait %s == %s", key, value)

    consent, _ = await authorization.get_consent_request(consent_challenge)

    grant = AcceptConsentRequest(
        grant_scope=list(consent.requested_scope),
        grant_access_token_audience=list(consent.requested_access_token_audience),
    )
    completed, _ = await authorization.accept_consent_request(consent_challenge, grant)
    logger.info(
        "FLOWS: consent granted for identity %s, scopes=%s audience=%s",
        session.identity.id, grant.grant_scope, grant.grant_access_token_audience,
    )
    return JSONResponse(completed.model_dump(), status_code=200)
