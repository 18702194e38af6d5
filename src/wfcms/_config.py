"""
Global configuration for the wfcms client.

Convention over Configuration: call WFCMS.configure() at application startup
to customize defaults. If not called, defaults plus environment variables
are used.

Hierarchy of precedence (highest to lowest):
1. Arguments passed to WebflowClient / Dispatcher constructors
2. Values set via WFCMS.configure()
3. Environment variables (WFCMS_*) - when allow_env_override=True
4. Hardcoded defaults (in dataclass fields)

Example:
    >>> from wfcms import WFCMS
    >>>
    >>> # Pre-loaded with defaults + env vars
    >>> WFCMS.config.api.page_size
    100
    >>>
    >>> # Custom configuration
    >>> WFCMS.configure(
    ...     auth={"api_token": "..."},
    ...     api={"primary_locale": "6501245cc8bf8aa9d483b104"},
    ...     rate_limit={"low_water_mark": 30},
    ... )
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from typing import Any, Self

_SECTIONS = ("auth", "api", "rate_limit")


# =============================================================================
# Exceptions
# =============================================================================


class ConfigEnvVarError(ValueError):
    """Raised when an environment variable has an invalid value."""

    def __init__(
        self,
        env_var: str,
        value: str,
        expected_type: str,
        cause: Exception | None = None,
    ):
        self.env_var = env_var
        self.value = value
        self.expected_type = expected_type
        super().__init__(f"Invalid value for {env_var}: '{value}' (expected {expected_type})")
        self.__cause__ = cause


class ConfigValidationError(ValueError):
    """Raised when a configuration value fails validation."""

    def __init__(
        self,
        field: str,
        value: Any,
        message: str,
        section: str | None = None,
    ):
        self.field = field
        self.value = value
        self.section = section
        prefix = f"[{section}] " if section else ""
        super().__init__(f"{prefix}Invalid value for '{field}': {value!r}. {message}")


# =============================================================================
# Environment Variables
# =============================================================================


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


class EnvVars:
    """
    Utility class for reading environment variables with type conversion.

    Example:
        >>> EnvVars.get("WFCMS_API_PAGE_SIZE", type_hint=int)
        100
        >>> EnvVars.get("UNDEFINED_VAR")
        None
    """

    @staticmethod
    def get(
        var_name: str,
        type_hint: Any = str,
        converter: Callable[[str], Any] | None = None,
    ) -> Any:
        """
        Read an environment variable with optional type conversion.

        Args:
            var_name: The environment variable name.
            type_hint: Type hint used to infer the converter (ignored if converter is provided).
            converter: Custom converter function (takes precedence over type_hint).

        Returns:
            The converted value, or None if env var is not set/empty.

        Raises:
            ConfigEnvVarError: If the value cannot be converted.
        """
        raw_value = os.environ.get(var_name)
        if not raw_value:
            return None

        actual_converter = converter or EnvVars._infer_converter(type_hint)
        try:
            return actual_converter(raw_value)
        except (ValueError, TypeError) as e:
            raise ConfigEnvVarError(
                env_var=var_name,
                value=raw_value,
                expected_type=type_hint.__name__ if hasattr(type_hint, "__name__") else str(type_hint),
                cause=e,
            ) from e

    @staticmethod
    def _infer_converter(type_hint: Any) -> Callable[[str], Any]:
        # String annotations (PEP 563) arrive as plain strings
        type_str = str(type_hint)

        if type_hint is int or type_str == "int":
            return int
        if type_hint is float or type_str == "float":
            return float
        if type_hint is bool or type_str == "bool":
            return lambda v: v.lower() in ("true", "1", "yes")
        return str


# =============================================================================
# Base Class
# =============================================================================


@dataclass(frozen=True)
class OverridableConfig:
    """
    Base class for immutable configuration sections.

    Provides `.with_overrides()` and `.with_env_vars()` for creating new
    instances with partial field updates.

    Example:
        >>> config = ApiConfig()
        >>> custom = config.with_overrides({"request_timeout": 60})
        >>> custom.request_timeout
        60
    """

    def with_overrides(self, overrides: dict[str, Any]) -> Self:
        """
        Return a new instance with specified fields overridden.

        None values are ignored, so partial dicts can be passed safely.

        Raises:
            ValueError: If overrides contains unknown field names.
        """
        if not overrides:
            return self

        valid_fields = {f.name for f in fields(self)}
        invalid_fields = set(overrides.keys()) - valid_fields

        if invalid_fields:
            raise ValueError(
                f"Unknown config fields: {invalid_fields}. "
                f"Valid fields are: {valid_fields}"
            )

        filtered = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered) if filtered else self

    def env_overrides(self) -> dict[str, Any]:
        """
        Read the env vars declared in field metadata.

        Returns:
            Dict of field name to converted env var value, for set vars only.

        Raises:
            ConfigEnvVarError: If an env var has an invalid value.
        """
        overrides: dict[str, Any] = {}
        for f in fields(self):
            env_var = f.metadata.get("env")
            if not env_var:
                continue
            value = EnvVars.get(
                var_name=env_var,
                type_hint=f.type,
                converter=f.metadata.get("converter"),
            )
            if value is not None:
                overrides[f.name] = value
        return overrides

    def with_env_vars(self) -> Self:
        """Return new instance with environment variables applied."""
        return self.with_overrides(self.env_overrides())


# =============================================================================
# Configuration Sections
# =============================================================================


@dataclass(frozen=True)
class AuthConfig(OverridableConfig):
    """
    Authentication configuration.

    Attributes:
        api_token: Bearer token sent on every call.
            Env var: WFCMS_AUTH_API_TOKEN
    """

    api_token: str | None = field(default=None, metadata={"env": "WFCMS_AUTH_API_TOKEN"})

    def has_credentials(self) -> bool:
        """Check if an API token is set."""
        return bool(self.api_token)

    def validate(self) -> Self:
        """Validate auth configuration fields."""
        if self.api_token is not None and self.api_token.strip() == "":
            raise ConfigValidationError(
                "api_token", self.api_token,
                "Must not be empty string.", section="auth"
            )
        return self


@dataclass(frozen=True)
class ApiConfig(OverridableConfig):
    """
    Configuration for the content API and the WebflowClient facade.

    Attributes:
        base_url: Base URL every call path is appended to.
            Env var: WFCMS_API_BASE_URL

        request_timeout: HTTP request timeout in seconds.
            Env var: WFCMS_API_REQUEST_TIMEOUT

        page_size: Items requested per page when listing a collection.
            The API caps pages at 100 items.
            Env var: WFCMS_API_PAGE_SIZE

        primary_locale: Locale id that anchors multi-locale items.
            Env var: WFCMS_API_PRIMARY_LOCALE

        locale_ids: Every locale id of the site, used as default target of
            deletions. Comma separated in the env var.
            Env var: WFCMS_API_LOCALE_IDS

        site_id: Site whose locales fetch_locales() reads by default.
            Env var: WFCMS_API_SITE_ID
    """

    base_url: str = field(default="https://api.webflow.com/beta", metadata={"env": "WFCMS_API_BASE_URL"})
    request_timeout: int = field(default=30, metadata={"env": "WFCMS_API_REQUEST_TIMEOUT"})
    page_size: int = field(default=100, metadata={"env": "WFCMS_API_PAGE_SIZE"})
    primary_locale: str | None = field(default=None, metadata={"env": "WFCMS_API_PRIMARY_LOCALE"})
    locale_ids: tuple[str, ...] = field(
        default=(),
        metadata={"env": "WFCMS_API_LOCALE_IDS", "converter": _split_csv},
    )
    site_id: str | None = field(default=None, metadata={"env": "WFCMS_API_SITE_ID"})

    def validate(self) -> Self:
        """Validate API configuration fields."""
        if not (self.base_url.startswith("http://") or self.base_url.startswith("https://")):
            raise ConfigValidationError(
                "base_url", self.base_url,
                "Must start with 'http://' or 'https://'.", section="api"
            )
        if self.request_timeout <= 0:
            raise ConfigValidationError(
                "request_timeout", self.request_timeout,
                "Must be greater than 0.", section="api"
            )
        if not 0 < self.page_size <= 100:
            raise ConfigValidationError(
                "page_size", self.page_size,
                "Must be between 1 and 100.", section="api"
            )
        if self.primary_locale is not None and self.primary_locale == "":
            raise ConfigValidationError(
                "primary_locale", self.primary_locale,
                "Must not be empty string.", section="api"
            )
        return self


@dataclass(frozen=True)
class RateLimitConfig(OverridableConfig):
    """
    Configuration for the dispatcher's quota-driven pacing.

    Attributes:
        initial_remaining: Optimistic quota assumed before the first response.
            Env var: WFCMS_RATE_LIMIT_INITIAL_REMAINING

        low_water_mark: Remaining quota below which dispatch slows down by one
            second per missing call.
            Env var: WFCMS_RATE_LIMIT_LOW_WATER_MARK

        remaining_header: Response header carrying the remaining quota.
            Env var: WFCMS_RATE_LIMIT_REMAINING_HEADER
    """

    initial_remaining: int = field(default=120, metadata={"env": "WFCMS_RATE_LIMIT_INITIAL_REMAINING"})
    low_water_mark: int = field(default=60, metadata={"env": "WFCMS_RATE_LIMIT_LOW_WATER_MARK"})
    remaining_header: str = field(default="x-ratelimit-remaining", metadata={"env": "WFCMS_RATE_LIMIT_REMAINING_HEADER"})

    def validate(self) -> Self:
        """Validate rate limit configuration fields."""
        if self.initial_remaining < 0:
            raise ConfigValidationError(
                "initial_remaining", self.initial_remaining,
                "Must be >= 0.", section="rate_limit"
            )
        if self.low_water_mark < 0:
            raise ConfigValidationError(
                "low_water_mark", self.low_water_mark,
                "Must be >= 0.", section="rate_limit"
            )
        if not self.remaining_header:
            raise ConfigValidationError(
                "remaining_header", self.remaining_header,
                "Must not be empty.", section="rate_limit"
            )
        return self


# =============================================================================
# Explain Support
# =============================================================================


@dataclass(frozen=True)
class ConfigEntry:
    """
    A configuration field with its resolved value and source.

    Attributes:
        name: The field name (e.g., "request_timeout").
        value: The resolved value.
        source: "default", "env:VAR_NAME" or "configure".

    Example:
        >>> ConfigEntry("api_token", "super-secret-token", "configure").formatted_value
        'supe********oken'
    """

    name: str
    value: Any
    source: str

    @property
    def formatted_value(self) -> str:
        """Return value formatted for display, masking secrets and truncating long strings."""
        if self.name == "api_token" and self.value is not None:
            secret = str(self.value)
            if len(secret) >= 12:
                return f"{secret[:4]}********{secret[-4:]}"
            return "********"

        if self.value is None:
            return "None"

        str_value = ",".join(self.value) if isinstance(self.value, tuple) else str(self.value)
        max_length = 50
        if len(str_value) > max_length:
            return str_value[: max_length - 3] + "..."
        return str_value


# =============================================================================
# Root Configuration
# =============================================================================


@dataclass(frozen=True)
class WFCMSConfig:
    """
    Root configuration aggregating the auth, api and rate_limit sections.

    Access via the global `WFCMS.config` property.

    Example:
        >>> from wfcms import WFCMS
        >>> WFCMS.config.rate_limit.low_water_mark
        60
    """

    auth: AuthConfig = field(default_factory=AuthConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    _sources: dict[str, dict[str, str]] = field(default_factory=dict, repr=False)

    def with_env_vars(self) -> WFCMSConfig:
        """Return a new config with WFCMS_* environment variables applied on top."""
        sources = self._copy_sources()
        sections: dict[str, OverridableConfig] = {}
        for name in _SECTIONS:
            section: OverridableConfig = getattr(self, name)
            overrides = section.env_overrides()
            sections[name] = section.with_overrides(overrides)
            env_names = {f.name: f.metadata.get("env") for f in fields(section)}
            for field_name in overrides:
                sources.setdefault(name, {})[field_name] = f"env:{env_names[field_name]}"
        return WFCMSConfig(**sections, _sources=sources)  # type: ignore[arg-type]

    def with_section_overrides(
        self,
        *,
        auth: dict[str, Any] | None = None,
        api: dict[str, Any] | None = None,
        rate_limit: dict[str, Any] | None = None,
    ) -> WFCMSConfig:
        """
        Return a new config with overrides merged into each section.

        Example:
            >>> custom = WFCMSConfig().with_section_overrides(api={"request_timeout": 60})
        """
        sources = self._copy_sources()
        requested = {"auth": auth or {}, "api": api or {}, "rate_limit": rate_limit or {}}
        for name, overrides in requested.items():
            for field_name, value in overrides.items():
                if value is not None:
                    sources.setdefault(name, {})[field_name] = "configure"
        return WFCMSConfig(
            auth=self.auth.with_overrides(requested["auth"]),
            api=self.api.with_overrides(requested["api"]),
            rate_limit=self.rate_limit.with_overrides(requested["rate_limit"]),
            _sources=sources,
        )

    def explain_data(self) -> dict[str, list[ConfigEntry]]:
        """Return every config value with its source, grouped by section."""
        return {
            name: [
                ConfigEntry(
                    name=f.name,
                    value=getattr(getattr(self, name), f.name),
                    source=self._sources.get(name, {}).get(f.name, "default"),
                )
                for f in fields(getattr(self, name))
            ]
            for name in _SECTIONS
        }

    def _copy_sources(self) -> dict[str, dict[str, str]]:
        return {section: dict(flds) for section, flds in self._sources.items()}


# =============================================================================
# Global Configuration Singleton
# =============================================================================


class _WFCMS:
    """
    Singleton holding the current configuration.

    Example:
        >>> from wfcms import WFCMS
        >>> WFCMS.configure(auth={"api_token": "..."})
        >>> print(WFCMS.config.api.request_timeout)
    """

    def __init__(self) -> None:
        self._config: WFCMSConfig = WFCMSConfig().with_env_vars()

    def configure(
        self,
        *,
        auth: dict[str, Any] | None = None,
        api: dict[str, Any] | None = None,
        rate_limit: dict[str, Any] | None = None,
        allow_env_override: bool = True,
    ) -> WFCMSConfig:
        """
        Configure client settings.

        Args:
            auth: Authentication overrides (api_token).
            api: API overrides (base_url, request_timeout, page_size, locales...).
            rate_limit: Pacing overrides (initial_remaining, low_water_mark...).
            allow_env_override: If True (default), env vars are used as fallback
                for fields NOT provided. If False, env vars are ignored entirely.

        Returns:
            The configured WFCMSConfig instance.

        Raises:
            ValueError: If any dict contains unknown field names.
            ConfigValidationError: If any config value fails validation.
        """
        base = WFCMSConfig()
        if allow_env_override:
            base = base.with_env_vars()

        self._config = base.with_section_overrides(
            auth=auth,
            api=api,
            rate_limit=rate_limit,
        )
        return self.validate()

    @property
    def config(self) -> WFCMSConfig:
        """Access current configuration (read-only)."""
        return self._config

    def reset(self) -> WFCMSConfig:
        """Reset configuration to defaults + env vars. Useful in tests."""
        self._config = WFCMSConfig().with_env_vars()
        return self.validate()

    def validate(self) -> WFCMSConfig:
        """
        Validate current configuration.

        Raises:
            ConfigValidationError: If any config value is invalid.
        """
        self._config.auth.validate()
        self._config.api.validate()
        self._config.rate_limit.validate()
        return self._config

    def explain(self, output: Callable[[str], None] = print) -> None:
        """
        Print current configuration with sources.

        Args:
            output: Callable receiving each line. Use `WFCMS.explain(logger.info)`
                to send it to logging.
        """
        name_width = 22
        output("WFCMS Configuration:")
        output("=" * 80)
        for section_name, entries in self._config.explain_data().items():
            output(f"[{section_name}]")
            for entry in entries:
                dots = "." * (name_width - len(entry.name))
                marker = "✎" if entry.source != "default" else " "
                output(f"  {entry.name} {dots} {entry.formatted_value:<50} {marker} {entry.source}")
        output("=" * 80)

    def __repr__(self) -> str:
        return f"WFCMS(config={self._config!r})"


WFCMS: _WFCMS = _WFCMS()
WFCMS.validate()
