"""Custom exceptions with error classification for the hotspot crawler."""

import asyncio
import json
from enum import Enum
from typing import Optional, Dict, Any

import httpx


class ErrorCode(str, Enum):
    """Error codes for classification and handling."""
    # Configuration errors
    INVALID_SELECTOR = "INVALID_SELECTOR"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    PLATFORM_NOT_REGISTERED = "PLATFORM_NOT_REGISTERED"

    # Remote site errors
    FETCH_TIMEOUT = "FETCH_TIMEOUT"
    FETCH_CONNECTION_ERROR = "FETCH_CONNECTION_ERROR"
    HTTP_STATUS_ERROR = "HTTP_STATUS_ERROR"
    RESPONSE_PARSE_ERROR = "RESPONSE_PARSE_ERROR"
    ROBOTS_DISALLOWED = "ROBOTS_DISALLOWED"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorKind(str, Enum):
    """Human-readable failure category reported per source."""
    NETWORK = "network"
    PARSE = "parse"
    HTTP_STATUS = "http_status"
    TIMEOUT = "timeout"
    GENERIC = "generic"


_KIND_LABELS = {
    ErrorKind.NETWORK: "Network error",
    ErrorKind.PARSE: "Parse error",
    ErrorKind.HTTP_STATUS: "HTTP error",
    ErrorKind.TIMEOUT: "Timeout",
    ErrorKind.GENERIC: "Error",
}

# Reason reported by the content checker when a page fetch times out
TIMEOUT_REASON = "请求超时"


class BaseAppException(Exception):
    """Base exception with error classification and retry information."""

    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = False,
        retry_after: Optional[int] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable
        self.retry_after = retry_after
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging and serialization."""
        return {
            "code": self.code.value,
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
            "retry_after": self.retry_after,
            "type": self.__class__.__name__
        }


# Configuration Errors
class ConfigurationError(BaseAppException):
    """Raised when a source configuration cannot be used."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.INVALID_CONFIGURATION,
            message=message,
            details=details,
            retryable=False
        )


class SelectorError(ConfigurationError):
    """Raised when a CSS selector cannot be compiled."""

    kind = ErrorKind.PARSE

    def __init__(self, selector: str, reason: str = "", details: Optional[Dict[str, Any]] = None):
        message = f"Invalid selector: {selector}"
        if reason:
            message += f" ({reason})"
        super().__init__(
            message=message,
            details=details or {"selector": selector}
        )
        self.code = ErrorCode.INVALID_SELECTOR
        self.selector = selector


class PlatformNotRegisteredError(ConfigurationError):
    """Raised when no crawler is registered for a platform id."""

    def __init__(self, platform_id: str, registered: Optional[list] = None):
        names = ", ".join(registered or []) or "none"
        super().__init__(
            message=f"No crawler registered for platform {platform_id}. Registered platforms: {names}",
            details={"platform_id": platform_id, "registered": registered or []}
        )
        self.code = ErrorCode.PLATFORM_NOT_REGISTERED


# Remote Site Errors
class FetchError(BaseAppException):
    """Base class for failures talking to a remote site."""

    kind = ErrorKind.NETWORK

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        url: str,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = True,
        retry_after: Optional[int] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details=details or {"url": url},
            retryable=retryable,
            retry_after=retry_after
        )
        self.url = url


class FetchTimeoutError(FetchError):
    """Raised when a request exceeds its timeout."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, url: str, timeout: float, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.FETCH_TIMEOUT,
            message=f"Request to {url} timed out after {timeout}s",
            url=url,
            details=details or {"url": url, "timeout": timeout}
        )
        self.timeout = timeout


class FetchConnectionError(FetchError):
    """Raised when the remote host cannot be reached."""

    def __init__(self, url: str, reason: str = "", details: Optional[Dict[str, Any]] = None):
        message = f"Connection to {url} failed"
        if reason:
            message += f": {reason}"
        super().__init__(
            code=ErrorCode.FETCH_CONNECTION_ERROR,
            message=message,
            url=url,
            details=details
        )


class HttpStatusError(FetchError):
    """Raised when the remote host answers with a non-2xx status."""

    kind = ErrorKind.HTTP_STATUS

    def __init__(self, url: str, status_code: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.HTTP_STATUS_ERROR,
            message=f"HTTP {status_code} from {url}",
            url=url,
            details=details or {"url": url, "status_code": status_code},
            retryable=status_code >= 500 or status_code == 429,
            retry_after=60 if status_code == 429 else None
        )
        self.status_code = status_code


class ResponseParseError(FetchError):
    """Raised when a response body has an unexpected shape."""

    kind = ErrorKind.PARSE

    def __init__(self, url: str, reason: str = "", details: Optional[Dict[str, Any]] = None):
        message = f"Failed to parse response from {url}"
        if reason:
            message += f": {reason}"
        super().__init__(
            code=ErrorCode.RESPONSE_PARSE_ERROR,
            message=message,
            url=url,
            details=details,
            retryable=False
        )


class RobotsDisallowedError(FetchError):
    """Raised when robots.txt forbids fetching a URL."""

    kind = ErrorKind.GENERIC

    def __init__(self, url: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.ROBOTS_DISALLOWED,
            message=f"robots.txt disallows {url}",
            url=url,
            details=details,
            retryable=False
        )


def classify_error(exc: BaseException) -> ErrorKind:
    """Map an exception to its reporting category by type."""
    if isinstance(exc, BaseAppException):
        return exc.kind
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(exc, httpx.HTTPStatusError):
        return ErrorKind.HTTP_STATUS
    if isinstance(exc, (httpx.TransportError, ConnectionError)):
        return ErrorKind.NETWORK
    if isinstance(exc, (json.JSONDecodeError, httpx.DecodingError)):
        return ErrorKind.PARSE
    return ErrorKind.GENERIC


def describe_error(exc: BaseException) -> str:
    """Build the category-prefixed message reported for a failed source."""
    kind = classify_error(exc)
    message = str(exc) or exc.__class__.__name__
    return f"{_KIND_LABELS[kind]}: {message}"
