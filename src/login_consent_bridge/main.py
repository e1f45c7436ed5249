# src/login_consent_bridge/main.py

import logging
import os
import typing
from pathlib import Path

import httpx
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.responses import Response

from . import flows
from .config import settings
from .errors import IntegrationError, UpstreamError
from .upstream import AuthorizationClient, IdentityClient, new_http_client

logger = logging.getLogger("login_consent_bridge.main")


# --- FastAPI App Setup ---
app = FastAPI(
    title="Login/Consent Bridge",
    description="Drives Kratos login flows and accepts Hydra login and consent challenges for the browser.",
    version="0.1.0"
)


# --- Upstream client dependencies (fresh clients per request) ---
def get_upstream_transport() -> typing.Optional[httpx.AsyncBaseTransport]:
    # None selects httpx's default network transport
    return None


async def get_identity_client(
        transport: typing.Optional[httpx.AsyncBaseTransport] = Depends(get_upstream_transport),
) -> typing.AsyncIterator[IdentityClient]:
    client = IdentityClient(new_http_client(settings.IDENTITY_SERVICE_URL, settings, transport))
    try:
        yield client
    finally:
        await client.aclose()


async def get_authorization_client(
        transport: typing.Optional[httpx.AsyncBaseTransport] = Depends(get_upstream_transport),
) -> typing.AsyncIterator[AuthorizationClient]:
    client = AuthorizationClient(new_http_client(settings.AUTHZ_SERVICE_URL, settings, transport))
    try:
        yield client
    finally:
        await client.aclose()


def request_cookies(request: Request) -> flows.Cookies:
    # request.cookies is a dict and would collapse repeated names
    return flows.parse_cookie_headers(request.headers.getlist("cookie"))


# --- Error boundary ---
@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    if exc.response is not None:
        logger.error(
            "MAIN: %s %s - error when calling `%s`: HTTP %s, body: %s",
            request.method, request.url.path, exc.operation, exc.response.status_code, exc.response.text,
        )
    else:
        logger.error(
            "MAIN: %s %s - error when calling `%s`: %r",
            request.method, request.url.path, exc.operation, exc.cause,
        )
    return JSONResponse(
        status_code=502,
        content={"error": "upstream_failure", "operation": exc.operation},
    )


@app.exception_handler(IntegrationError)
async def integration_error_handler(request: Request, exc: IntegrationError):
    logger.error("MAIN: %s %s - integration fault: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "integration_fault"})


# --- Identity Service (Kratos) endpoints ---
@app.get("/api/kratos/self-service/login/browser")
async def create_login_flow(
        request: Request,
        login_challenge: str = Query(""),
        aal: str = Query(""),
        return_to: str = Query(""),
        refresh: typing.Optional[str] = Query(None),
        identity: IdentityClient = Depends(get_identity_client),
        authorization: AuthorizationClient = Depends(get_authorization_client),
) -> Response:
    return await flows.initiate_login(
        identity,
        authorization,
        cookies=request_cookies(request),
        session_cookie_name=settings.SESSION_COOKIE_NAME,
        login_challenge=login_challenge,
        aal=aal,
        return_to=return_to,
        refresh=refresh,
    )


@app.api_route("/api/kratos/self-service/login", methods=["GET", "POST"])
async def update_login_flow(
        request: Request,
        flow: str = Query(""),
        identity: IdentityClient = Depends(get_identity_client),
) -> Response:
    raw_body = await request.body()
    return await flows.update_login(identity, request_cookies(request), flow, raw_body)


@app.get("/api/kratos/self-service/errors")
async def get_self_service_error(
        error_id: str = Query("", alias="id"),
        identity: IdentityClient = Depends(get_identity_client),
) -> Response:
    return await flows.lookup_error(identity, error_id)


# --- Authorization Service (Hydra) endpoints ---
@app.get("/api/consent")
async def consent(
        request: Request,
        consent_challenge: str = Query(""),
        identity: IdentityClient = Depends(get_identity_client),
        authorization: AuthorizationClient = Depends(get_authorization_client),
) -> Response:
    return await flows.accept_consent(identity, authorization, request_cookies(request), consent_challenge)


@app.get("/healthz", include_in_schema=False)
async def healthz():
    return {"status": "ok"}


# --- Pre-built UI ---
class UIStaticFiles(StaticFiles):
    """Serves /login from login.html: bare paths other than / get an .html suffix."""

    async def get_response(self, path: str, scope) -> Response:
        if path != "." and not os.path.splitext(path)[1]:
            path = path + ".html"
        return await super().get_response(path, scope)


def mount_ui(target: FastAPI, directory: typing.Optional[Path]) -> bool:
    if directory is None:
        logger.info("MAIN: UI_DIST_DIR not set, static assets are not served.")
        return False
    if not Path(directory).is_dir():
        logger.warning("MAIN: UI directory %s not found, static assets are not served.", directory)
        return False
    target.mount("/", UIStaticFiles(directory=directory, html=True), name="ui")
    return True


# Mounted last so the API routes above take precedence over "/".
mount_ui(app, settings.UI_DIST_DIR)


# --- Startup Event ---
@app.on_event("startup")
async def startup_event():
    logger.info("--- Login/Consent Bridge (FastAPI) Starting Up ---")
    logger.info("Identity Service URL: %s", settings.IDENTITY_SERVICE_URL)
    logger.info("Authorization Service URL: %s", settings.AUTHZ_SERVICE_URL)
    logger.info("Session cookie: %s", settings.SESSION_COOKIE_NAME)
    logger.info("Upstream timeout: %ss (debug: %s)", settings.UPSTREAM_TIMEOUT_SECONDS, settings.UPSTREAM_DEBUG)
    logger.info("UI directory: %s", settings.UI_DIST_DIR or "not configured")
    logger.info("-------------------------------------------")
