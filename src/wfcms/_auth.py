"""
Authentication providers for the wfcms client.

The content API authenticates every call with a static bearer token, so the
only shipped provider is BearerTokenAuthProvider. The AuthProvider
abstraction stays open for token sources that rotate.

Example:
    >>> from wfcms._auth import BearerTokenAuthProvider
    >>> auth = BearerTokenAuthProvider(token="my-site-token")
    >>> auth.get_auth_headers()
    {'Authorization': 'Bearer my-site-token'}
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wfcms._config import AuthConfig


class AuthenticationError(Exception):
    """
    Raised when no usable credential is available.

    Attributes:
        message: Description of the authentication failure.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthProvider(ABC):
    """
    Abstract base class for authentication providers.

    Implementations must be thread-safe.
    """

    @abstractmethod
    def get_access_token(self) -> str:
        """
        Obtain a valid access token (without the "Bearer" prefix).

        Raises:
            AuthenticationError: If unable to obtain a valid token.
        """
        pass

    def get_auth_headers(self) -> dict[str, str]:
        """Return the Authorization header for HTTP requests."""
        return {"Authorization": f"Bearer {self.get_access_token()}"}


class BearerTokenAuthProvider(AuthProvider):
    """Provider for a fixed API token (site or workspace token)."""

    def __init__(self, token: str):
        assert token, "token cannot be empty"
        self._token = token

    def get_access_token(self) -> str:
        return self._token

    def __repr__(self) -> str:
        return "BearerTokenAuthProvider(token='********')"


def create_auth_from_config(config: AuthConfig | None = None) -> AuthProvider:
    """
    Create an AuthProvider from configuration.

    Args:
        config: Auth config to read the token from. If None, uses WFCMS.config.auth.

    Returns:
        A BearerTokenAuthProvider holding the configured token.

    Raises:
        AuthenticationError: If no API token is configured.

    Example:
        >>> from wfcms import WFCMS
        >>> WFCMS.configure(auth={"api_token": "my-site-token"})
        >>> auth = create_auth_from_config()
    """
    if config is None:
        from wfcms._config import WFCMS
        config = WFCMS.config.auth

    if not config.has_credentials():
        raise AuthenticationError(
            "No API token available. Either:\n"
            "  1. Set the WFCMS_AUTH_API_TOKEN environment variable\n"
            "  2. Call WFCMS.configure(auth={'api_token': ...}) at startup\n"
            "  3. Pass auth_provider=... to the client"
        )

    assert config.api_token is not None
    return BearerTokenAuthProvider(token=config.api_token)
