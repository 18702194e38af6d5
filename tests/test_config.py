"""Tests for global configuration module."""

import os
import unittest
from unittest.mock import patch

from wfcms._config import (
    WFCMS,
    ApiConfig,
    AuthConfig,
    ConfigEntry,
    ConfigEnvVarError,
    ConfigValidationError,
    EnvVars,
    RateLimitConfig,
    WFCMSConfig,
)

CLEAN_ENV = {k: v for k, v in os.environ.items() if not k.startswith("WFCMS_")}


class TestDefaults(unittest.TestCase):
    """Tests for default configuration values."""

    def setUp(self):
        with patch.dict(os.environ, CLEAN_ENV, clear=True):
            WFCMS.reset()

    def tearDown(self):
        WFCMS.reset()

    def test_api_defaults(self):
        """Should return sensible defaults for the API section."""
        self.assertEqual(WFCMS.config.api.base_url, "https://api.webflow.com/beta")
        self.assertEqual(WFCMS.config.api.request_timeout, 30)
        self.assertEqual(WFCMS.config.api.page_size, 100)
        self.assertIsNone(WFCMS.config.api.primary_locale)
        self.assertEqual(WFCMS.config.api.locale_ids, ())
        self.assertIsNone(WFCMS.config.api.site_id)

    def test_rate_limit_defaults(self):
        """Should start optimistic and slow down below 60 remaining calls."""
        self.assertEqual(WFCMS.config.rate_limit.initial_remaining, 120)
        self.assertEqual(WFCMS.config.rate_limit.low_water_mark, 60)
        self.assertEqual(WFCMS.config.rate_limit.remaining_header, "x-ratelimit-remaining")

    def test_has_credentials_false_by_default(self):
        """Should return False when no token is set."""
        self.assertIsNone(WFCMS.config.auth.api_token)
        self.assertFalse(WFCMS.config.auth.has_credentials())


class TestWFCMSConfigure(unittest.TestCase):
    """Tests for WFCMS.configure() method."""

    def setUp(self):
        WFCMS.reset()

    def tearDown(self):
        WFCMS.reset()

    def test_configure_overrides_sections(self):
        """Should merge overrides into each section and keep other defaults."""
        WFCMS.configure(
            auth={"api_token": "token-123"},
            api={"primary_locale": "loc-en", "locale_ids": ("loc-en", "loc-es")},
            rate_limit={"low_water_mark": 30},
            allow_env_override=False,
        )

        self.assertEqual(WFCMS.config.auth.api_token, "token-123")
        self.assertEqual(WFCMS.config.api.primary_locale, "loc-en")
        self.assertEqual(WFCMS.config.api.locale_ids, ("loc-en", "loc-es"))
        self.assertEqual(WFCMS.config.api.page_size, 100)
        self.assertEqual(WFCMS.config.rate_limit.low_water_mark, 30)
        self.assertEqual(WFCMS.config.rate_limit.initial_remaining, 120)

    def test_configure_ignores_none_values(self):
        """Should keep defaults for fields passed as None."""
        WFCMS.configure(api={"request_timeout": None}, allow_env_override=False)

        self.assertEqual(WFCMS.config.api.request_timeout, 30)

    def test_configure_rejects_unknown_fields(self):
        """Should raise ValueError for unknown field names."""
        with self.assertRaises(ValueError) as ctx:
            WFCMS.configure(api={"unknown_field": 1})

        self.assertIn("unknown_field", str(ctx.exception))

    def test_configure_validates_values(self):
        """Should raise ConfigValidationError for invalid values."""
        with self.assertRaises(ConfigValidationError) as ctx:
            WFCMS.configure(api={"page_size": 500}, allow_env_override=False)

        self.assertEqual(ctx.exception.field, "page_size")
        self.assertEqual(ctx.exception.section, "api")

    @patch.dict(os.environ, {"WFCMS_API_REQUEST_TIMEOUT": "90", "WFCMS_API_PAGE_SIZE": "50"})
    def test_configure_wins_over_env_vars(self):
        """Should prefer configure() values and fall back to env vars for the rest."""
        WFCMS.configure(api={"request_timeout": 10})

        self.assertEqual(WFCMS.config.api.request_timeout, 10)
        self.assertEqual(WFCMS.config.api.page_size, 50)

    @patch.dict(os.environ, {"WFCMS_API_PAGE_SIZE": "50"})
    def test_configure_without_env_override_ignores_env_vars(self):
        """Should ignore env vars entirely when allow_env_override=False."""
        WFCMS.configure(allow_env_override=False)

        self.assertEqual(WFCMS.config.api.page_size, 100)


class TestEnvVars(unittest.TestCase):
    """Tests for environment variable loading."""

    def tearDown(self):
        WFCMS.reset()

    @patch.dict(os.environ, {
        "WFCMS_AUTH_API_TOKEN": "env-token",
        "WFCMS_API_BASE_URL": "https://proxy.local/beta",
        "WFCMS_API_LOCALE_IDS": "loc-en, loc-es,,loc-fr ",
        "WFCMS_RATE_LIMIT_LOW_WATER_MARK": "40",
    })
    def test_reset_loads_env_vars(self):
        """Should convert env vars to each field's type."""
        WFCMS.reset()

        self.assertEqual(WFCMS.config.auth.api_token, "env-token")
        self.assertEqual(WFCMS.config.api.base_url, "https://proxy.local/beta")
        self.assertEqual(WFCMS.config.api.locale_ids, ("loc-en", "loc-es", "loc-fr"))
        self.assertEqual(WFCMS.config.rate_limit.low_water_mark, 40)

    @patch.dict(os.environ, {"WFCMS_API_REQUEST_TIMEOUT": "soon"})
    def test_invalid_env_var_raises(self):
        """Should raise ConfigEnvVarError naming the variable."""
        with self.assertRaises(ConfigEnvVarError) as ctx:
            WFCMSConfig().with_env_vars()

        self.assertEqual(ctx.exception.env_var, "WFCMS_API_REQUEST_TIMEOUT")
        self.assertEqual(ctx.exception.value, "soon")

    @patch.dict(os.environ, {"SOME_FLAG": "yes"})
    def test_bool_conversion(self):
        """Should accept true/1/yes as True."""
        self.assertTrue(EnvVars.get("SOME_FLAG", type_hint=bool))

    def test_unset_var_returns_none(self):
        """Should return None for unset variables."""
        self.assertIsNone(EnvVars.get("WFCMS_SURELY_UNDEFINED_VAR"))


class TestSectionValidation(unittest.TestCase):
    """Tests for per-section validation."""

    def test_blank_token_is_invalid(self):
        with self.assertRaises(ConfigValidationError):
            AuthConfig(api_token="  ").validate()

    def test_base_url_must_be_http(self):
        with self.assertRaises(ConfigValidationError):
            ApiConfig(base_url="ftp://api.webflow.com").validate()

    def test_request_timeout_must_be_positive(self):
        with self.assertRaises(ConfigValidationError):
            ApiConfig(request_timeout=0).validate()

    def test_negative_low_water_mark_is_invalid(self):
        with self.assertRaises(ConfigValidationError):
            RateLimitConfig(low_water_mark=-1).validate()

    def test_empty_remaining_header_is_invalid(self):
        with self.assertRaises(ConfigValidationError):
            RateLimitConfig(remaining_header="").validate()

    def test_with_overrides_returns_new_instance(self):
        """Should leave the original section untouched."""
        original = ApiConfig()
        custom = original.with_overrides({"page_size": 10})

        self.assertEqual(custom.page_size, 10)
        self.assertEqual(original.page_size, 100)


class TestExplain(unittest.TestCase):
    """Tests for configuration sources and explain output."""

    def tearDown(self):
        WFCMS.reset()

    def test_sources_track_origin_of_each_value(self):
        """Should report default, env and configure sources."""
        with patch.dict(os.environ, {**CLEAN_ENV, "WFCMS_API_SITE_ID": "site-1"}, clear=True):
            WFCMS.configure(api={"page_size": 20})

        entries = {e.name: e for e in WFCMS.config.explain_data()["api"]}
        self.assertEqual(entries["page_size"].source, "configure")
        self.assertEqual(entries["site_id"].source, "env:WFCMS_API_SITE_ID")
        self.assertEqual(entries["base_url"].source, "default")

    def test_token_is_masked(self):
        """Should never print the full token."""
        self.assertEqual(ConfigEntry("api_token", "abcd1234efgh5678", "configure").formatted_value, "abcd********5678")
        self.assertEqual(ConfigEntry("api_token", "short", "configure").formatted_value, "********")

    def test_long_values_are_truncated(self):
        entry = ConfigEntry("base_url", "https://" + "x" * 100, "default")

        self.assertEqual(len(entry.formatted_value), 50)
        self.assertTrue(entry.formatted_value.endswith("..."))

    def test_explain_writes_every_section(self):
        """Should emit one header per section to the given output."""
        WFCMS.configure(auth={"api_token": "abcd1234efgh5678"}, allow_env_override=False)
        lines: list[str] = []

        WFCMS.explain(output=lines.append)

        self.assertIn("[auth]", lines)
        self.assertIn("[api]", lines)
        self.assertIn("[rate_limit]", lines)
        self.assertFalse(any("abcd1234efgh5678" in line for line in lines))


if __name__ == "__main__":
    unittest.main()
