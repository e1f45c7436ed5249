# src/login_consent_bridge/models.py

import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Optional

logger = logging.getLogger("login_consent_bridge.models")


# --- Identity Service (Kratos) payloads ---

class Identity(BaseModel):
    """
    The identity behind a session. Traits are schema-defined by the Identity
    Service and stay opaque here.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    schema_id: Optional[str] = None
    traits: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("traits", mode="before")
    @classmethod
    def unexpected_traits_as_empty(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return v
        logger.warning("MODELS: unexpected traits format %s, treating as empty", type(v).__name__)
        return {}


class Session(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    active: Optional[bool] = None
    identity: Identity


class LoginFlowParams(BaseModel):
    """Query parameters forwarded to CreateBrowserLoginFlow."""
    aal: str = ""
    return_to: str = ""
    login_challenge: str = ""
    refresh: bool = False


class UpdateLoginFlowBody(BaseModel):
    """
    One login method submission, modelled on the OIDC method.
    Fields of other methods (password, totp, ...) are kept as extras and
    forwarded untouched.
    """
    model_config = ConfigDict(extra="allow")

    method: str = ""
    provider: str = ""
    csrf_token: Optional[str] = None
    traits: Optional[Dict[str, Any]] = None
    upstream_parameters: Optional[Dict[str, Any]] = None


class ErrorMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: int = 0
    status: str = ""
    reason: str = ""
    message: str = ""


class SelfServiceError(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    error: ErrorMessage = Field(default_factory=ErrorMessage)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ExternalError(BaseModel):
    """The only error shape handed to browsers."""
    id: str
    reason: str
    message: str


# --- Authorization Service (Hydra) payloads ---

class AcceptLoginRequest(BaseModel):
    subject: str


class ConsentRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    challenge: Optional[str] = None
    subject: Optional[str] = None
    skip: Optional[bool] = None
    client: Optional[Dict[str, Any]] = None
    requested_scope: List[str] = Field(default_factory=list)
    requested_access_token_audience: List[str] = Field(default_factory=list)

    @field_validator("requested_scope", "requested_access_token_audience", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class AcceptConsentRequest(BaseModel):
    grant_scope: List[str] = Field(default_factory=list)
    grant_access_token_audience: List[str] = Field(default_factory=list)


class CompletedRequest(BaseModel):
    """Hydra's answer to an accepted login or consent request."""
    model_config = ConfigDict(extra="allow")

    redirect_to: str
