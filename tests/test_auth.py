"""Tests for authentication providers."""

import unittest

from wfcms._auth import (
    AuthenticationError,
    AuthProvider,
    BearerTokenAuthProvider,
    create_auth_from_config,
)
from wfcms._config import AuthConfig


class TestBearerTokenAuthProvider(unittest.TestCase):
    """Tests for the static token provider."""

    def test_returns_token(self):
        """Should return the token without prefix."""
        auth = BearerTokenAuthProvider(token="site-token")

        self.assertEqual(auth.get_access_token(), "site-token")

    def test_auth_headers_use_bearer_scheme(self):
        """Should build the Authorization header."""
        auth = BearerTokenAuthProvider(token="site-token")

        self.assertEqual(auth.get_auth_headers(), {"Authorization": "Bearer site-token"})

    def test_empty_token_is_rejected(self):
        with self.assertRaises(AssertionError):
            BearerTokenAuthProvider(token="")

    def test_repr_masks_token(self):
        """Should never leak the token in repr()."""
        self.assertNotIn("site-token", repr(BearerTokenAuthProvider(token="site-token")))


class TestCustomAuthProvider(unittest.TestCase):
    """Tests for the AuthProvider contract."""

    def test_subclass_only_needs_access_token(self):
        """Should derive headers from get_access_token()."""
        class RotatingProvider(AuthProvider):
            def __init__(self):
                self.count = 0

            def get_access_token(self):
                self.count += 1
                return f"token-{self.count}"

        provider = RotatingProvider()

        self.assertEqual(provider.get_auth_headers(), {"Authorization": "Bearer token-1"})
        self.assertEqual(provider.get_auth_headers(), {"Authorization": "Bearer token-2"})


class TestCreateAuthFromConfig(unittest.TestCase):
    """Tests for create_auth_from_config()."""

    def test_creates_bearer_provider(self):
        """Should build a provider from the configured token."""
        auth = create_auth_from_config(AuthConfig(api_token="site-token"))

        self.assertIsInstance(auth, BearerTokenAuthProvider)
        self.assertEqual(auth.get_access_token(), "site-token")

    def test_missing_token_raises(self):
        """Should explain how to provide a token."""
        with self.assertRaises(AuthenticationError) as ctx:
            create_auth_from_config(AuthConfig())

        self.assertIn("WFCMS_AUTH_API_TOKEN", ctx.exception.message)


if __name__ == "__main__":
    unittest.main()
