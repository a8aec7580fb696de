"""
Custom exceptions for the DAO discovery layer.

Every remote failure reaches callers through this single hierarchy. Codes are
HTTP-like so the explore router can map them directly onto responses.
"""
from typing import Any, Dict, Optional

import httpx


class DiscoveryError(Exception):
    """Base exception for all discovery errors."""

    def __init__(
        self,
        message: str,
        code: int = 500,
        retryable: bool = True,
        response: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable
        self.response = response

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error_code": self.code,
            "error_message": self.message,
            "retryable": self.retryable,
        }


# ============================================
# 4xx Client Errors
# ============================================

class InvalidQueryError(DiscoveryError):
    """400 Bad Request - Query parameters rejected before any remote call."""

    def __init__(self, message: str = "Invalid discovery query"):
        super().__init__(message, code=400, retryable=False)


# ============================================
# Registry Errors
# ============================================

class RegistryRejectedError(DiscoveryError):
    """The registry answered, but reported an error."""

    def __init__(self, message: str, status_code: int = 500, response: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            code=status_code,
            retryable=status_code >= 500,
            response=response,
        )


class RegistryDecodeError(DiscoveryError):
    """502 Bad Gateway - The registry reply could not be decoded."""

    def __init__(self, message: str = "Malformed registry response", response: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=502, retryable=True, response=response)


class RegistryTransportError(DiscoveryError):
    """503 Service Unavailable - The registry could not be reached."""

    def __init__(self, message: str = "DAO Registry unreachable"):
        super().__init__(message, code=503, retryable=True)


class RegistryUnavailableError(DiscoveryError):
    """503 Service Unavailable - No usable registry client."""

    def __init__(self, message: str = "DAO Registry not available"):
        super().__init__(message, code=503, retryable=False)


class RegistryTimeoutError(DiscoveryError):
    """504 Gateway Timeout - The registry did not answer in time."""

    def __init__(self, message: str = "DAO Registry request timed out"):
        super().__init__(message, code=504, retryable=True)


# ============================================
# Exception Classification Helpers
# ============================================

def classify_exception(error: Exception) -> DiscoveryError:
    """
    Convert a generic exception to a DiscoveryError.

    Keeps a single error channel regardless of which library raised.
    """
    if isinstance(error, DiscoveryError):
        return error

    error_msg = str(error) or type(error).__name__

    if isinstance(error, httpx.TimeoutException):
        return RegistryTimeoutError(f"DAO Registry request timed out: {error_msg}")

    if isinstance(error, httpx.HTTPStatusError):
        return RegistryRejectedError(error_msg, error.response.status_code)

    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return RegistryTransportError(f"DAO Registry unreachable: {error_msg}")

    if isinstance(error, (ValueError, TypeError, KeyError)):
        return RegistryDecodeError(f"Malformed registry response: {error_msg}")

    return DiscoveryError(error_msg)
