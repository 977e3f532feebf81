"""
Error taxonomy for the oracle request pipeline.

Every failure that can end a request maps to one exception class carrying
a stable error code. The broker converts these into error responses, so
transports never see a raw exception.
"""

from typing import Optional


class OracleError(Exception):
    """Base class for request pipeline failures."""

    code: str = "E_PROVIDER_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class MissingProviderKeyError(OracleError):
    """Raised when the provider path is needed but no credential is configured."""

    code = "E_MISSING_PROVIDER_KEY"


class ClientSamplingUnavailableError(OracleError):
    """Raised in 'always' mode when caller-provided generation gave no text."""

    code = "E_CLIENT_SAMPLING_UNAVAILABLE"


class EmptyModelOutputError(OracleError):
    """Raised when a response contains no extractable text."""

    code = "E_EMPTY_MODEL_OUTPUT"


class OperationCancelledError(OracleError):
    """
    Raised when the request token fires (caller abort or deadline).

    Classified as a generic provider error; the reason is carried in the
    message ("Timed out after ... ms" or "Cancelled by caller").
    """

    code = "E_PROVIDER_ERROR"

    def __init__(self, reason: str):
        super().__init__(f"Provider error: {reason}")
        self.reason = reason


class ProviderCallError(OracleError):
    """Provider call failed after retries, or with a non-retryable status."""

    def __init__(self, message: str, status: Optional[int] = None):
        code = f"E_PROVIDER_HTTP_{status}" if status else "E_PROVIDER_ERROR"
        super().__init__(message, code=code)
        self.status = status


def read_status_code(exc: BaseException) -> Optional[int]:
    """
    Read an HTTP status code from an exception, if it carries one.

    Checks `status_code`, `status` and `http_status` attributes, then the
    `status_code` of an attached `response`.
    """
    for key in ("status_code", "status", "http_status"):
        value = getattr(exc, key, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(exc, "response", None)
    if response is not None:
        nested = getattr(response, "status_code", None)
        if isinstance(nested, int):
            return nested
    return None


def provider_error_from_exception(exc: BaseException) -> OracleError:
    """
    Translate an arbitrary provider-path exception into an OracleError.

    OracleError instances pass through unchanged. Anything else becomes a
    ProviderCallError annotated with the HTTP status where available.
    """
    if isinstance(exc, OracleError):
        return exc

    status = read_status_code(exc)
    detail = " ".join(str(exc).split()) or exc.__class__.__name__
    if status:
        message = f"Provider error (status {status}): {detail}"
    else:
        message = f"Provider error: {detail}"
    return ProviderCallError(message, status=status)
