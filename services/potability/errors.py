"""Error taxonomy and HTTP failure classification for the prediction client."""

import json
from enum import Enum
from typing import List, Optional


class ErrorType(Enum):
    REQUIRED_FIELD_MISSING = "required_field_missing"
    NOT_A_NUMBER = "not_a_number"
    OUT_OF_RANGE = "out_of_range"
    NETWORK_UNREACHABLE = "network_unreachable"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    RATE_LIMITED = "rate_limited"
    CLIENT_ERROR = "client_error"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"


TRANSIENT_ERRORS = frozenset({
    ErrorType.NETWORK_UNREACHABLE,
    ErrorType.TIMEOUT,
    ErrorType.SERVER_ERROR,
    ErrorType.RATE_LIMITED,
})

CONNECTIVITY_MESSAGE = (
    "Unable to connect to prediction service. "
    "Please check your internet connection."
)
MALFORMED_MESSAGE = "Invalid response format from server."
UNKNOWN_MESSAGE = "Unable to complete analysis. Please try again."

# (error type, user message) per status code
_STATUS_MESSAGES = {
    400: (ErrorType.CLIENT_ERROR, "Invalid request. Please check your input values."),
    401: (ErrorType.AUTHENTICATION, "Unauthorized access. Please try again."),
    403: (ErrorType.AUTHORIZATION, "Access forbidden. Please contact support."),
    404: (ErrorType.NOT_FOUND, "Prediction service not found. Please try again later."),
    422: (ErrorType.CLIENT_ERROR, "Input validation failed. Please check your values."),
    429: (ErrorType.RATE_LIMITED, "Too many requests. Please wait and try again."),
    500: (ErrorType.SERVER_ERROR, "Server error. Please try again later."),
    502: (ErrorType.SERVER_ERROR, "Service temporarily unavailable. Please try again."),
    503: (ErrorType.SERVER_ERROR, "Service unavailable. Please try again later."),
    504: (ErrorType.SERVER_ERROR, "Request timeout. Please try again."),
}


class PredictionServiceError(Exception):
    """Classified failure from the remote prediction service.

    ``message`` is the technical description meant for logs;
    ``user_message`` is what ends up in the failed PredictionResponse.
    """

    def __init__(
        self,
        error_type: ErrorType,
        message: str,
        user_message: str,
        status_code: Optional[int] = None,
        details: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.user_message = user_message
        self.status_code = status_code
        self.details = details

    @property
    def is_transient(self) -> bool:
        return self.error_type in TRANSIENT_ERRORS

    def __repr__(self) -> str:
        return (
            f"PredictionServiceError(type={self.error_type.value}, "
            f"message={self.message!r}, status_code={self.status_code})"
        )


def is_recoverable(error: PredictionServiceError) -> bool:
    return error.is_transient


def status_error_type(status_code: int) -> ErrorType:
    if status_code in _STATUS_MESSAGES:
        return _STATUS_MESSAGES[status_code][0]
    if status_code >= 500:
        return ErrorType.SERVER_ERROR
    if 400 <= status_code < 500:
        return ErrorType.CLIENT_ERROR
    return ErrorType.UNKNOWN


def status_user_message(status_code: int) -> str:
    if status_code in _STATUS_MESSAGES:
        return _STATUS_MESSAGES[status_code][1]
    return f"Network error ({status_code}). Please try again."


def parse_error_body(body: str):
    """Extract (message, details) from a structured error document.

    Understands FastAPI validation errors (``detail`` as a string or a list
    of ``{"msg": ...}`` objects) and ``{"error": ..., "details": [...]}``.
    Returns (None, None) when the body is not a recognized shape.
    """
    try:
        data = json.loads(body)
    except (ValueError, TypeError):
        return None, None
    if not isinstance(data, dict):
        return None, None

    if "detail" in data:
        detail = data["detail"]
        if isinstance(detail, list):
            details = []
            for item in detail:
                msg = item.get("msg") if isinstance(item, dict) else None
                details.append(str(msg) if msg is not None else "Validation error")
            return f"Input validation failed: {', '.join(details)}", details
        if isinstance(detail, str):
            return detail, None
        return "Validation error occurred", None

    if "error" in data:
        message = str(data["error"]) if data["error"] is not None else "Unknown error"
        details = None
        if isinstance(data.get("details"), list):
            details = [str(d) for d in data["details"] if d is not None and str(d)]
        return message, details or None

    return None, None


def classify_status(status_code: int, body: str = "") -> PredictionServiceError:
    """Build a classified error for a non-2xx HTTP response."""
    error_type = status_error_type(status_code)
    message, details = parse_error_body(body)
    return PredictionServiceError(
        error_type=error_type,
        message=f"HTTP {status_code}: {body[:500]}",
        user_message=message or status_user_message(status_code),
        status_code=status_code,
        details=details,
    )
