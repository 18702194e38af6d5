"""
Rate-limited client for a collection-based content API (Webflow CMS).

Every call goes through a single-flight Dispatcher that executes calls in
submission order and paces itself from the quota the server reports after
each response. On top of it, WebflowClient offers item operations and the
multi-call sagas: paginated listing, multi-locale creation and multi-locale
deletion.

Quick Start:
    >>> from wfcms import WFCMS, WebflowClient, ItemData
    >>> WFCMS.configure(
    ...     auth={"api_token": "..."},
    ...     api={"primary_locale": "6501245cc8bf8aa9d483b104"},
    ... )
    >>> with WebflowClient() as client:
    ...     items = client.fetch_all_items("6552ba78e1e2c166cb2ee0aa")

Main Classes:
    - WebflowClient: Facade with item operations and sagas.
    - Dispatcher: Rate-limited, single-flight call executor.
    - Item, ItemData, ItemsPage, Pagination, PublishResult, Locale: Data models.

Configuration:
    - WFCMS: Global configuration singleton.
    - WFCMSConfig, AuthConfig, ApiConfig, RateLimitConfig: Configuration sections.
    - ConfigEnvVarError, ConfigValidationError: Configuration errors.

Errors:
    - WebflowError: Base class of the client's errors.
    - UpstreamError: The API rejected a call; carries the decoded error body.
    - PreconditionViolationError: Invalid saga input, raised before any call.
    - UnexpectedResponseError: A successful response lacked required data.
    - DispatcherClosedError: Call submitted to, or pending in, a closed dispatcher.
"""

from importlib.metadata import version as _get_version

__version__ = _get_version("wfcms")

from wfcms._auth import (
    AuthenticationError,
    AuthProvider,
    BearerTokenAuthProvider,
    create_auth_from_config,
)
from wfcms._client import WebflowClient
from wfcms._config import (
    WFCMS,
    ApiConfig,
    AuthConfig,
    ConfigEntry,
    ConfigEnvVarError,
    ConfigValidationError,
    RateLimitConfig,
    WFCMSConfig,
)
from wfcms._dispatcher import (
    Call,
    Dispatcher,
    PacingPolicy,
    PendingCallQueue,
    RateLimitState,
)
from wfcms._errors import (
    DispatcherClosedError,
    PreconditionViolationError,
    UnexpectedResponseError,
    UpstreamError,
    WebflowError,
)
from wfcms._event_listeners import (
    DispatchEventListener,
    LoggingListener,
)
from wfcms._http import (
    HttpClient,
    StandaloneHttpClient,
)
from wfcms._models import (
    Item,
    ItemData,
    ItemsPage,
    Locale,
    Pagination,
    PublishResult,
)

__all__ = [
    "__version__",
    # Client
    "WebflowClient",
    # Dispatch
    "Dispatcher",
    "Call",
    "PendingCallQueue",
    "RateLimitState",
    "PacingPolicy",
    "DispatchEventListener",
    "LoggingListener",
    # Models
    "Item",
    "ItemData",
    "ItemsPage",
    "Pagination",
    "PublishResult",
    "Locale",
    # Configuration
    "WFCMS",
    "WFCMSConfig",
    "AuthConfig",
    "ApiConfig",
    "RateLimitConfig",
    "ConfigEntry",
    "ConfigEnvVarError",
    "ConfigValidationError",
    # Authentication
    "AuthProvider",
    "BearerTokenAuthProvider",
    "AuthenticationError",
    "create_auth_from_config",
    # HTTP Client
    "HttpClient",
    "StandaloneHttpClient",
    # Errors
    "WebflowError",
    "UpstreamError",
    "PreconditionViolationError",
    "UnexpectedResponseError",
    "DispatcherClosedError",
]
