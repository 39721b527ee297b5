"""
unistream - Error Definitions

Error taxonomy for the streaming engine:
configuration, transport, decode, provider and cancellation failures.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

import httpx


class ErrorCategory(str, Enum):
    """Error classification."""
    CONFIGURATION = "configuration_error"
    TRANSPORT = "transport_error"
    DECODE = "decode_error"
    PROVIDER = "provider_error"
    CANCELLATION = "cancellation"


CANCELLED_MESSAGE = "Cancelled by user"


@dataclass
class ErrorDetails:
    """Full error information carried by every unistream exception."""
    code: str
    message: str
    category: ErrorCategory

    provider: Optional[str] = None
    request_id: str = ""
    status_code: Optional[int] = None
    partial_content: Optional[str] = None

    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "code": self.code,
            "message": self.message,
            "type": self.category.value,
            "request_id": self.request_id,
        }

        if self.provider:
            result["provider"] = self.provider
        if self.status_code is not None:
            result["status_code"] = self.status_code
        if self.partial_content:
            result["partial_content"] = self.partial_content
        if self.details:
            result["details"] = self.details

        return {"error": result}


class UniStreamError(Exception):
    """Base exception for all unistream errors."""

    def __init__(self, error: ErrorDetails):
        self.error = error
        super().__init__(error.message)

    @property
    def message(self) -> str:
        return self.error.message


# ============================================================
# Configuration Errors
# ============================================================

class ConfigurationError(UniStreamError):
    """Request could not be assembled; no network call was made."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        param: str = "",
        request_id: str = "",
    ):
        super().__init__(
            ErrorDetails(
                code="invalid_configuration",
                message=message,
                category=ErrorCategory.CONFIGURATION,
                provider=provider,
                request_id=request_id,
                details={"param": param} if param else {},
            )
        )


# ============================================================
# Transport Errors
# ============================================================

class TransportError(UniStreamError):
    """Base class for failures talking to the provider."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        request_id: str = "",
        code: str = "transport_error",
        status_code: Optional[int] = None,
    ):
        super().__init__(
            ErrorDetails(
                code=code,
                message=message,
                category=ErrorCategory.TRANSPORT,
                provider=provider,
                request_id=request_id,
                status_code=status_code,
            )
        )


class UpstreamHTTPError(TransportError):
    """Provider answered with a non-2xx status."""

    def __init__(
        self,
        provider: str,
        status_code: int,
        message: str,
        request_id: str = "",
    ):
        super().__init__(
            message,
            provider=provider,
            request_id=request_id,
            code=f"upstream_{status_code}",
            status_code=status_code,
        )


class ConnectionFailedError(TransportError):
    """Could not establish a connection to the provider."""

    def __init__(self, provider: str, reason: str = "", request_id: str = ""):
        message = f"Failed to connect to {provider} API"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            provider=provider,
            request_id=request_id,
            code="connection_failed",
        )


class RequestTimeoutError(TransportError):
    """Provider did not respond within the configured timeout."""

    def __init__(self, provider: str, request_id: str = ""):
        super().__init__(
            f"{provider} did not respond within timeout",
            provider=provider,
            request_id=request_id,
            code="timeout",
        )


# ============================================================
# Stream Errors
# ============================================================

class DecodeError(UniStreamError):
    """A frame could not be decoded."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        request_id: str = "",
        partial_content: Optional[str] = None,
    ):
        super().__init__(
            ErrorDetails(
                code="decode_error",
                message=message,
                category=ErrorCategory.DECODE,
                provider=provider,
                request_id=request_id,
                partial_content=partial_content or None,
            )
        )


class ProviderError(UniStreamError):
    """Provider reported an error inside a successful HTTP response."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        request_id: str = "",
        partial_content: Optional[str] = None,
    ):
        super().__init__(
            ErrorDetails(
                code="provider_error",
                message=message,
                category=ErrorCategory.PROVIDER,
                provider=provider,
                request_id=request_id,
                partial_content=partial_content or None,
            )
        )


class CancellationError(UniStreamError):
    """The caller cancelled the request."""

    def __init__(self, reason: str = CANCELLED_MESSAGE, request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="cancelled",
                message=reason,
                category=ErrorCategory.CANCELLATION,
                request_id=request_id,
            )
        )


# ============================================================
# Error Helpers
# ============================================================

def extract_api_error_message(
    status_code: int,
    reason_phrase: str = "",
    body: Union[bytes, str, None] = None,
) -> str:
    """
    Build a human readable message from a failed provider response.

    Provider error bodies come in several shapes:
        {"message": "..."}
        {"message": {"detail": "..."}}
        {"error": {"message": "..."}}
        {"detail": "..."}
    Gemini wraps these in an array: [{"error": {"message": "..."}}].
    Anything unparseable falls back to the status line.
    """
    default = f"API error ({status_code}): {reason_phrase or 'Unknown error'}"
    if not body:
        return default

    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return default
    if isinstance(data, list):
        data = data[0] if data else None
    if not isinstance(data, dict):
        return default

    detail: Optional[str] = None
    message = data.get("message")
    error = data.get("error")

    if isinstance(message, str) and message:
        detail = message
    elif isinstance(message, dict):
        inner = message.get("detail") or message.get("error")
        detail = inner if isinstance(inner, str) else json.dumps(message)
    elif isinstance(error, dict) and isinstance(error.get("message"), str):
        detail = error["message"]
    elif isinstance(error, str) and error:
        detail = error
    elif isinstance(data.get("detail"), str):
        detail = data["detail"]

    if not detail:
        return default
    return f"API error ({status_code}): {detail}"


def map_transport_exception(
    error: Exception,
    provider: str,
    request_id: str = "",
) -> UniStreamError:
    """Convert an httpx exception into a canonical unistream exception."""
    if isinstance(error, UniStreamError):
        return error

    if isinstance(error, (httpx.ConnectTimeout, httpx.ConnectError)):
        return ConnectionFailedError(provider, str(error), request_id)

    if isinstance(error, httpx.TimeoutException):
        return RequestTimeoutError(provider, request_id)

    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        return UpstreamHTTPError(
            provider,
            response.status_code,
            extract_api_error_message(
                response.status_code, response.reason_phrase, response.content
            ),
            request_id,
        )

    return TransportError(
        f"Stream transport failed: {error}" if str(error) else "Stream transport failed",
        provider=provider,
        request_id=request_id,
    )
