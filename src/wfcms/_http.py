"""
HTTP transport abstraction for the wfcms client.

The Dispatcher performs every exchange through an HttpClient, so tests and
alternative transports can be plugged in without touching the dispatch loop.

Available implementations:
    - StandaloneHttpClient: Uses an AuthProvider and `requests`. Default.

Example:
    >>> from wfcms._auth import BearerTokenAuthProvider
    >>> from wfcms._http import StandaloneHttpClient
    >>> client = StandaloneHttpClient(auth_provider=BearerTokenAuthProvider("token"))
    >>> response = client.request("GET", "https://api.webflow.com/beta/sites/123")
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, override

import requests

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from wfcms._auth import AuthProvider


class HttpClient(ABC):
    """
    Abstract base class for HTTP clients.

    Implementations handle authentication. They must let transport errors
    (`requests.RequestException`) propagate and must never raise on HTTP error
    statuses: interpreting the status code is the Dispatcher's job.

    Example:
        >>> class MyHttpClient(HttpClient):
        ...     def request(self, method, url, data=None, headers=None, timeout=30):
        ...         return requests.request(method, url, json=data, headers=headers, timeout=timeout)
    """

    @abstractmethod
    def request(
        self,
        method: str,
        url: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: int = 30,
    ) -> requests.Response:
        """
        Execute an authenticated request, with a JSON body when `data` is given.

        Args:
            method: HTTP method ("GET", "POST", "PATCH", "DELETE").
            url: The full URL to request.
            data: JSON-serializable data to send in the request body.
            headers: Additional headers to include (merged with auth headers).
            timeout: Request timeout in seconds.

        Returns:
            The HTTP response, whatever its status code.

        Raises:
            requests.RequestException: If the exchange does not complete.
        """
        pass


class StandaloneHttpClient(HttpClient):
    """
    HTTP client using an AuthProvider for the Authorization header.

    Args:
        auth_provider: Provider for the bearer token.
    """

    def __init__(self, auth_provider: "AuthProvider"):
        from wfcms._auth import AuthProvider

        assert auth_provider is not None, "auth_provider cannot be None"
        assert isinstance(auth_provider, AuthProvider), "auth_provider must be an AuthProvider instance"

        self._auth = auth_provider

    @override
    def request(
        self,
        method: str,
        url: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: int = 30,
    ) -> requests.Response:
        """
        Execute an authenticated request using `requests`.

        Raises:
            AssertionError: If method/url is empty or timeout is invalid.
            requests.RequestException: If the exchange does not complete.
        """
        assert method, "HTTP method cannot be empty."
        assert url, "URL cannot be empty."
        assert timeout is not None, "Timeout cannot be None."
        assert timeout > 0, "Timeout must be greater than 0."

        merged_headers = {**self._auth.get_auth_headers(), **(headers or {})}

        return requests.request(
            method,
            url,
            json=data,
            headers=merged_headers,
            timeout=timeout,
        )
