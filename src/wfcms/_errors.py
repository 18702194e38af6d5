"""
Exceptions raised by the wfcms client.

Transport failures are not wrapped: they surface as the original
`requests.RequestException` raised while talking to the API.
"""

from typing import Any


class WebflowError(Exception):
    """Base class for all errors raised by the wfcms client."""

    pass


class UpstreamError(WebflowError):
    """
    Raised when the API answers with a status code outside the success range.

    The decoded error body is kept verbatim in `payload` so callers can branch
    on the server's own error semantics (e.g., validation errors).

    Attributes:
        status_code: The HTTP status code returned by the API.
        payload: The decoded response body (dict for JSON, str otherwise).

    Example:
        >>> try:
        ...     client.create_item(collection_id, data)
        ... except UpstreamError as e:
        ...     if e.status_code == 400:
        ...         print(e.payload.get("details"))
    """

    def __init__(self, status_code: int, payload: Any):
        self.status_code = status_code
        self.payload = payload
        super().__init__(f"Upstream rejected the call (HTTP {status_code}): {payload!r}")


class PreconditionViolationError(WebflowError, ValueError):
    """
    Raised when a saga input is structurally invalid.

    Always raised before any call is submitted to the API.
    """

    pass


class UnexpectedResponseError(WebflowError):
    """Raised when a successful response lacks data a saga depends on."""

    def __init__(self, message: str, payload: Any = None):
        self.payload = payload
        super().__init__(message)


class DispatcherClosedError(WebflowError):
    """Raised for calls submitted to, or still queued in, a closed dispatcher."""

    pass
