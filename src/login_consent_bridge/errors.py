# src/login_consent_bridge/errors.py

import typing

import httpx

from .models import ExternalError, SelfServiceError


class UpstreamError(Exception):
    """
    An upstream call failed: transport error, timeout, or a status >= 300.
    Keeps the upstream response (when there is one) so callers can inspect it
    or relay it, e.g. the 422 of a login flow update.
    """

    def __init__(
            self,
            operation: str,
            response: typing.Optional[httpx.Response] = None,
            cause: typing.Optional[Exception] = None,
    ):
        self.operation = operation
        self.response = response
        self.cause = cause
        if response is not None:
            detail = f"{operation} returned HTTP {response.status_code}"
        else:
            detail = f"{operation} failed: {cause!r}"
        super().__init__(detail)

    @property
    def status_code(self) -> typing.Optional[int]:
        return self.response.status_code if self.response is not None else None


class IntegrationError(Exception):
    """An upstream answered successfully but its body does not have the expected shape."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        super().__init__(f"{operation}: {detail}")


def to_external_error(error: SelfServiceError) -> ExternalError:
    # code, status and timestamps stay internal
    return ExternalError(
        id=error.id,
        reason=error.error.reason,
        message=error.error.message,
    )
