"""Uniform success/error envelope returned by every fetching operation."""

import logging
from typing import Any, Generic, List, Literal, Optional, TypeVar
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred while fetching Copilot metrics"


class ResponseError(BaseModel):
    """A human-readable error, with HTTP details when the API responded."""

    message: str
    status_code: Optional[int] = None
    entity_name: Optional[str] = None


class ServerActionResponse(BaseModel, Generic[T]):
    """Either ``{"status": "OK", "response": ...}`` or an error variant."""

    status: Literal["OK", "ERROR"]
    response: Optional[T] = None
    errors: List[ResponseError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "OK"

    @property
    def error_message(self) -> Optional[str]:
        """First error message, if any."""
        return self.errors[0].message if self.errors else None


def ok_response(payload: Any) -> ServerActionResponse:
    return ServerActionResponse(status="OK", response=payload)


def format_response_error(entity_name: str, status_code: int, reason: str = "") -> ServerActionResponse:
    """Build the error envelope for a non-success HTTP status.

    Args:
        entity_name: Enterprise or organization the request was made for
        status_code: HTTP status returned by the API
        reason: HTTP reason phrase, if any

    Returns:
        Error envelope carrying the status code and entity name
    """
    message = f"Error fetching {entity_name}: {status_code}"
    if reason:
        message = f"{message} {reason}"
    return ServerActionResponse(
        status="ERROR",
        errors=[ResponseError(message=message, status_code=status_code, entity_name=entity_name)],
    )


def unknown_response_error(error: Optional[BaseException] = None) -> ServerActionResponse:
    """Build the generic error envelope for transport and parse failures."""
    message = UNKNOWN_ERROR_MESSAGE
    if error is not None and str(error):
        message = f"{message}: {error}"
    logger.debug(f"Returning unknown error envelope: {message}")
    return ServerActionResponse(status="ERROR", errors=[ResponseError(message=message)])
