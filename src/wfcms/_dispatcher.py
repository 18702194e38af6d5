"""
Rate-limited, single-flight request dispatcher.

Every call to the content API goes through one Dispatcher. Calls are queued
in submission order and executed one at a time by a single worker thread.
After each exchange the server-reported remaining quota drives the pacing of
the next call:

- remaining >= low-water mark: the next call goes out immediately
- remaining <  low-water mark: the next call waits (low-water mark - remaining) seconds

The quota is never decremented locally; the response header is the only
source of truth. When the header is missing or unparsable the dispatcher
assumes the worst (zero remaining) and paces maximally.

Each call carries a `concurrent.futures.Future` that is settled exactly once:
with the decoded body on 2xx, with an UpstreamError wrapping the decoded body
otherwise, or with the transport exception when the exchange fails. Nothing
is retried.

Pacing is per Dispatcher. Several processes sharing one token are not
coordinated: each one paces from the quota it observes.

Example:
    >>> from wfcms._dispatcher import Dispatcher
    >>> dispatcher = Dispatcher()
    >>> future = dispatcher.submit("collections/abc/items?offset=0&limit=100")
    >>> page = future.result()
"""

import logging
import threading
from collections import deque
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any

import requests
from requests.structures import CaseInsensitiveDict
from ulid import ULID

from wfcms._errors import DispatcherClosedError, UpstreamError
from wfcms._event_listeners import DispatchEventListener
from wfcms._http import HttpClient

logger = logging.getLogger(__name__)


# =============================================================================
# Call & Queue
# =============================================================================


@dataclass
class Call:
    """
    One logical HTTP exchange plus its completion handle.

    Attributes:
        path: Path relative to the API base URL (may include a query string).
        method: HTTP method (default: "GET").
        body: Optional JSON-serializable body.
        future: Settled exactly once with the decoded payload or an exception.
        id: ULID used to correlate log lines.
    """
    path: str
    method: str = "GET"
    body: dict[str, Any] | None = None
    future: "Future[Any]" = field(default_factory=Future, repr=False, compare=False)
    id: str = field(default_factory=lambda: str(ULID()))

    def __post_init__(self) -> None:
        assert self.path, "Call path cannot be empty."
        assert self.method, "Call method cannot be empty."


class PendingCallQueue:
    """
    Unbounded FIFO of calls awaiting dispatch.

    `put()` never blocks and never rejects. The queue is not synchronized on
    its own: the Dispatcher guards it with its condition lock.
    """

    def __init__(self) -> None:
        self._calls: deque[Call] = deque()

    def put(self, call: Call) -> None:
        self._calls.append(call)

    def get_next(self) -> Call | None:
        """Remove and return the oldest call, or None when empty."""
        return self._calls.popleft() if self._calls else None

    def drain(self) -> list[Call]:
        """Remove and return every queued call, oldest first."""
        calls = list(self._calls)
        self._calls.clear()
        return calls

    def __len__(self) -> int:
        return len(self._calls)


# =============================================================================
# Rate Limit State & Pacing
# =============================================================================


@dataclass
class RateLimitState:
    """
    Last remaining quota reported by the server.

    Attributes:
        remaining: Calls left before the server resets its window.
    """
    remaining: int = 120

    def update_from_headers(self, headers: Any, header_name: str) -> int:
        """
        Overwrite `remaining` with the quota header of a response.

        A missing, non-numeric or negative value is stored as 0.

        Returns:
            The new remaining quota.
        """
        raw = CaseInsensitiveDict(headers or {}).get(header_name)
        try:
            value = int(float(raw))
        except (TypeError, ValueError, OverflowError):
            value = 0
        self.remaining = max(0, value)
        return self.remaining


class PacingPolicy:
    """
    Linear backpressure below a low-water mark.

    Example:
        >>> policy = PacingPolicy(low_water_mark=60)
        >>> policy.delay_for(120)
        0
        >>> policy.delay_for(45)
        15
    """

    def __init__(self, low_water_mark: int = 60):
        assert low_water_mark >= 0, "low_water_mark must be >= 0."
        self.low_water_mark = low_water_mark

    def delay_for(self, remaining: int) -> int:
        """Return whole seconds to wait before the next call."""
        if remaining >= self.low_water_mark:
            return 0
        return self.low_water_mark - remaining


# =============================================================================
# Dispatcher
# =============================================================================


class Dispatcher:
    """
    Sole consumer of the pending call queue.

    The worker thread is started lazily by the first `submit()` and idles on a
    condition variable whenever the queue is empty. Any number of threads may
    submit calls; they are still executed one at a time in submission order.

    Example:
        >>> with Dispatcher(http_client=my_client) as dispatcher:
        ...     f1 = dispatcher.submit("collections/abc/items")
        ...     f2 = dispatcher.submit("collections/abc/items/publish", method="POST", body={"itemIds": ["1"]})
        ...     print(f1.result(), f2.result())

    Attributes:
        base_url: Base URL each call path is appended to.
        request_timeout: HTTP timeout in seconds for each exchange.
        remaining_header: Response header carrying the remaining quota.
        pacing: Policy turning the remaining quota into a delay.
        listeners: Observers of the dispatch lifecycle.
    """

    def __init__(
        self,
        http_client: HttpClient | None = None,
        base_url: str | None = None,
        request_timeout: int | None = None,
        initial_remaining: int | None = None,
        low_water_mark: int | None = None,
        remaining_header: str | None = None,
        listeners: list[DispatchEventListener] | None = None,
        sleep: Callable[[float], Any] | None = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            http_client: Transport used for every exchange. If None, uses a
                StandaloneHttpClient with the token from WFCMS.config.auth.
            base_url: If None, uses WFCMS.config.api.base_url.
            request_timeout: If None, uses WFCMS.config.api.request_timeout.
            initial_remaining: Quota assumed before the first response.
                If None, uses WFCMS.config.rate_limit.initial_remaining.
            low_water_mark: If None, uses WFCMS.config.rate_limit.low_water_mark.
            remaining_header: If None, uses WFCMS.config.rate_limit.remaining_header.
            listeners: Dispatch observers. If None, registers a LoggingListener.
            sleep: Function used to wait between paced calls. Defaults to an
                interruptible wait that `close()` cuts short.

        Raises:
            AuthenticationError: If no http_client is given and no token is configured.
        """
        from wfcms._config import WFCMS
        cfg = WFCMS.config

        if base_url is None:
            base_url = cfg.api.base_url
        if request_timeout is None:
            request_timeout = cfg.api.request_timeout
        if initial_remaining is None:
            initial_remaining = cfg.rate_limit.initial_remaining
        if low_water_mark is None:
            low_water_mark = cfg.rate_limit.low_water_mark
        if remaining_header is None:
            remaining_header = cfg.rate_limit.remaining_header

        if http_client is None:
            from wfcms._auth import create_auth_from_config
            from wfcms._http import StandaloneHttpClient
            http_client = StandaloneHttpClient(auth_provider=create_auth_from_config(cfg.auth))

        if listeners is None:
            from wfcms._event_listeners import LoggingListener
            listeners = [LoggingListener()]

        assert http_client is not None, "Dispatcher http_client cannot be None."
        assert base_url, "Dispatcher base_url cannot be empty."
        assert request_timeout > 0, "request_timeout must be greater than 0."
        assert initial_remaining >= 0, "initial_remaining must be >= 0."
        assert remaining_header, "remaining_header cannot be empty."

        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.remaining_header = remaining_header
        self.pacing = PacingPolicy(low_water_mark=low_water_mark)
        self.listeners: list[DispatchEventListener] = listeners

        self._state = RateLimitState(remaining=initial_remaining)
        self._queue = PendingCallQueue()
        self._wakeup = threading.Condition()
        self._in_flight = False
        self._closed = False
        self._closed_event = threading.Event()
        self._sleep = sleep or self._closed_event.wait
        self._worker: threading.Thread | None = None

    # ======================
    # Public API
    # ======================

    def submit(
        self,
        path: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
    ) -> "Future[Any]":
        """
        Queue a call and return its completion handle. Never blocks.

        Args:
            path: Path relative to the base URL (may include a query string).
            method: HTTP method.
            body: Optional JSON body.

        Returns:
            A Future settled with the decoded payload, or failed with
            UpstreamError (status > 299) or the transport exception.

        Raises:
            DispatcherClosedError: If the dispatcher was closed.
        """
        call = Call(path=path, method=method, body=body)
        with self._wakeup:
            if self._closed:
                raise DispatcherClosedError("Cannot submit calls to a closed dispatcher.")
            self._queue.put(call)
            self._ensure_worker()
            self._wakeup.notify_all()
        return call.future

    @property
    def remaining(self) -> int:
        """Remaining quota observed after the last exchange."""
        return self._state.remaining

    @property
    def pending(self) -> int:
        """Number of calls waiting in the queue (the in-flight call excluded)."""
        with self._wakeup:
            return len(self._queue)

    @property
    def in_flight(self) -> bool:
        """Whether a call is currently on the wire."""
        with self._wakeup:
            return self._in_flight

    def wait_idle(self, timeout: float | None = None) -> bool:
        """
        Block until the queue is empty and no call is in flight.

        Useful to let detached calls (e.g. a trailing publication) finish
        before shutting down.

        Returns:
            True if the dispatcher became idle, False on timeout.
        """
        with self._wakeup:
            return self._wakeup.wait_for(
                lambda: self._closed or (not self._queue and not self._in_flight),
                timeout=timeout,
            )

    def close(self, wait: bool = True) -> None:
        """
        Stop accepting calls and shut the worker down.

        Calls still queued are failed with DispatcherClosedError; the in-flight
        call, if any, is allowed to finish.

        Args:
            wait: If True, block until the worker thread exits.
        """
        with self._wakeup:
            if self._closed:
                return
            self._closed = True
            self._closed_event.set()
            abandoned = self._queue.drain()
            self._wakeup.notify_all()
            worker = self._worker

        for call in abandoned:
            if call.future.set_running_or_notify_cancel():
                call.future.set_exception(DispatcherClosedError("Dispatcher closed before the call was sent."))

        if abandoned:
            logger.warning(f"{'Dispatcher':<26} | WF | ⚠️ Closed with {len(abandoned)} call(s) still queued.")

        if wait and worker is not None and worker is not threading.current_thread():
            worker.join()

    def __enter__(self) -> "Dispatcher":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ======================
    # Worker loop
    # ======================

    def _ensure_worker(self) -> None:
        # Caller holds self._wakeup
        if self._worker is None:
            self._worker = threading.Thread(target=self._run, name="wfcms-dispatcher", daemon=True)
            self._worker.start()

    def _run(self) -> None:
        while True:
            with self._wakeup:
                while not self._closed and not self._queue:
                    self._wakeup.wait()
                if self._closed:
                    return
                call = self._queue.get_next()
                assert call is not None, "🌀 Sanity check | Woke up with an empty queue."
                self._in_flight = True

            # A call cancelled while queued is skipped without touching the wire or the pacing
            sent = call.future.set_running_or_notify_cancel()
            if sent:
                self._dispatch(call)

            with self._wakeup:
                self._in_flight = False
                if self._closed or not self._queue or not sent:
                    self._wakeup.notify_all()
                    continue
                remaining = self._state.remaining

            delay = self.pacing.delay_for(remaining)
            if delay > 0:
                self._notify_listeners("on_pacing_delay", delay=delay, remaining=remaining)
                self._sleep(delay)

    def _dispatch(self, call: Call) -> None:
        """
        Perform one exchange and settle the call's future. Never raises.
        """
        self._notify_listeners("on_before_dispatch", call=call, remaining=self._state.remaining)

        url = f"{self.base_url}/{call.path.lstrip('/')}"
        try:
            response = self.http_client.request(
                call.method,
                url,
                data=call.body,
                headers={"Content-Type": "application/json"},
                timeout=self.request_timeout,
            )
        except Exception as e:
            logger.error(f"{call.id[:26]:<26} | WF | ❌ {call.method} {call.path} failed: {e}")
            self._notify_listeners("on_after_dispatch", call=call, status_code=None, remaining=self._state.remaining)
            call.future.set_exception(e)
            return

        remaining = self._state.update_from_headers(response.headers, self.remaining_header)
        self._notify_listeners("on_after_dispatch", call=call, status_code=response.status_code, remaining=remaining)

        try:
            payload = self._decode(response)
        except Exception as e:
            logger.error(f"{call.id[:26]:<26} | WF | ❌ Could not decode response of {call.method} {call.path}: {e}")
            call.future.set_exception(e)
            return

        if response.status_code > 299:
            logger.warning(
                f"{call.id[:26]:<26} | WF | ⚠️ {call.method} {call.path} rejected with HTTP {response.status_code}: {payload!r}"
            )
            call.future.set_exception(UpstreamError(status_code=response.status_code, payload=payload))
            return

        call.future.set_result(payload)

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        """Decode the body as JSON when the content-type says so, as text otherwise."""
        content_type = CaseInsensitiveDict(response.headers or {}).get("Content-Type") or ""
        if "application/json" in content_type:
            return response.json()
        return response.text

    def _notify_listeners(self, event: str, **kwargs: Any) -> None:
        """
        Notify all registered listeners about an event.

        Exceptions raised by listeners are logged but do not interrupt dispatching.
        """
        for listener in self.listeners:
            try:
                method = getattr(listener, event, None)
                if method and callable(method):
                    method(**kwargs)
            except Exception as e:
                listener_name = listener.__class__.__name__
                logger.warning(
                    f"{'Dispatcher':<26} | WF | Event listener `{listener_name}.{event}()` raised an exception: {e}"
                )
