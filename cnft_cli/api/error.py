"""API error types for the DAS JSON-RPC client and the uploader."""

from dataclasses import dataclass
from typing import Optional


class ApiError(Exception):
    """Base exception for API errors."""

    pass


class HttpError(ApiError):
    """HTTP/network error."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"HTTP error: {message}")


class NotFoundError(ApiError):
    """Resource not found (404 or a JSON-RPC not-found error)."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Not found: {message}")


class BadRequestError(ApiError):
    """Invalid request parameters (400)."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Bad request: {message}")


class UnauthorizedError(ApiError):
    """Missing or rejected credentials (401)."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Unauthorized: {message}")


class ForbiddenError(ApiError):
    """Permission denied (403)."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Permission denied: {message}")


class RateLimitedError(ApiError):
    """Too many requests (429)."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Rate limited: {message}")


class ServerError(ApiError):
    """Server-side error (5xx)."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Server error: {message}")


class DeserializeError(ApiError):
    """JSON deserialization error."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Deserialization error: {message}")


class InvalidParameterError(ApiError):
    """Invalid parameter provided."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Invalid parameter: {message}")


class UnexpectedStatusError(ApiError):
    """Unexpected HTTP status code."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"Unexpected status {status}: {message}")


class RpcError(ApiError):
    """JSON-RPC error object returned with a successful HTTP status."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"RPC error {code}: {message}")


class RetryExhaustedError(ApiError):
    """Every attempt of a retried operation failed."""

    def __init__(self, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed after {attempts} attempts: {last_error}")


@dataclass
class ErrorResponse:
    """Error body: a JSON-RPC `error` object or a plain REST error."""

    code: Optional[int] = None
    message: Optional[str] = None
    details: Optional[str] = None

    def get_message(self) -> str:
        """Get the error message, preferring message over details."""
        return self.message or self.details or "Unknown error"

    @classmethod
    def from_dict(cls, data: dict) -> "ErrorResponse":
        """Create from dictionary."""
        error = data.get("error")
        if isinstance(error, dict):
            return cls(
                code=error.get("code"),
                message=error.get("message"),
                details=str(error["data"]) if error.get("data") is not None else None,
            )
        return cls(
            message=data.get("message") or error,
            details=data.get("details"),
        )
