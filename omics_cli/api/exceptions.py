"""Exceptions raised by the REST API clients."""


class ApiError(Exception):
    """Base exception for all API client errors."""


class ApiRequestError(ApiError):
    """Raised when the request could not be sent or no response arrived."""


class ApiHTTPError(ApiError):
    """Raised for non-2xx HTTP responses."""

    def __init__(self, status_code: int, url: str, body: str = ""):
        self.status_code = status_code
        self.url = url
        self.body = body
        detail = f": {body}" if body else ""
        super().__init__(f"HTTP {status_code} from {url}{detail}")


class ApiResponseError(ApiError):
    """Raised when a response body is not in the expected format."""
