from typing import Any, Optional


class NxapiError(Exception):
    """Base class for errors raised by the NX-API client."""


class HttpError(NxapiError):
    """Raised when a retryable HTTP status persists after the last retry."""

    def __init__(self, status: int, body: Any = None):
        super().__init__(f"HTTP request failed: status code {status}")
        self.status = status
        self.body = body


class JsonError(NxapiError):
    """Raised when a response carries an error in its imdata envelope.

    The parsed response is kept on ``res`` so callers can inspect details.
    """

    def __init__(self, res):
        super().__init__(f"JSON error: {res.raw}")
        self.res = res

    @property
    def code(self) -> str:
        return self.res.get("imdata.0.error.attributes.code").text

    @property
    def text(self) -> str:
        return self.res.get("imdata.0.error.attributes.text").text


class AuthError(NxapiError):
    """Raised when login or token refresh fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
