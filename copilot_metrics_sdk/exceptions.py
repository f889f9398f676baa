"""Custom exceptions for the Copilot Metrics SDK."""

from typing import Optional
import aiohttp


class CopilotSDKError(Exception):
    """Base exception for all Copilot SDK errors."""

    def __init__(self, message: str, response: Optional[aiohttp.ClientResponse] = None):
        super().__init__(message)
        self.message = message
        self.response = response
        self.status_code = response.status if response else None


class CopilotAPIError(CopilotSDKError):
    """Raised when the metrics API returns a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        entity_name: str = "",
        reason: str = "",
        response: Optional[aiohttp.ClientResponse] = None
    ):
        super().__init__(message, response)
        self.status_code = status_code
        self.entity_name = entity_name
        self.reason = reason


class CopilotAuthError(CopilotAPIError):
    """Raised when authentication fails (401, 403)."""
    pass


class CopilotNotFoundError(CopilotAPIError):
    """Raised when the enterprise, organization or report does not exist (404)."""
    pass


class CopilotServerError(CopilotAPIError):
    """Raised when the server returns a 5xx error."""
    pass


class CopilotNetworkError(CopilotSDKError):
    """Raised when network connectivity issues occur."""
    pass


class CopilotTimeoutError(CopilotSDKError):
    """Raised when requests timeout."""
    pass


class CopilotValidationError(CopilotSDKError):
    """Raised when input validation fails."""
    pass


class CopilotConfigError(CopilotSDKError):
    """Raised when required environment configuration is missing."""
    pass
