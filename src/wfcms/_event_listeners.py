"""
Event listeners for the dispatch lifecycle.

Listeners are read-only observers of the Dispatcher: they can log, notify or
collect metrics, but must not modify the calls they see. Exceptions raised
by a listener are logged and never interrupt dispatching.

Available Listeners:
    - DispatchEventListener: Base class with no-op hooks.
    - LoggingListener: Logs each exchange and every pacing delay.

Example:
    >>> class QuotaGauge(DispatchEventListener):
    ...     def on_after_dispatch(self, call, status_code, remaining):
    ...         statsd.gauge("webflow.quota.remaining", remaining)
    >>>
    >>> client = WebflowClient(listeners=[QuotaGauge()])
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, override

if TYPE_CHECKING:
    from wfcms._dispatcher import Call

logger = logging.getLogger(__name__)


class DispatchEventListener:
    """
    Base class for observing Dispatcher events.

    All methods have default empty implementations, so subclasses only need to
    override the hooks they care about. Hooks run on the dispatcher's worker
    thread: keep them quick.
    """

    def on_before_dispatch(self, call: Call, remaining: int) -> None:
        """
        Called right before a call goes on the wire.

        Args:
            call: The call about to be sent.
            remaining: Remaining quota observed after the previous exchange.
        """
        pass

    def on_after_dispatch(self, call: Call, status_code: int | None, remaining: int) -> None:
        """
        Called after the exchange, before the call's future is settled.

        Args:
            call: The call just sent.
            status_code: HTTP status, or None when the exchange did not complete.
            remaining: Remaining quota reported by this response.
        """
        pass

    def on_pacing_delay(self, delay: float, remaining: int) -> None:
        """
        Called when the next dispatch is postponed to spare quota.

        Args:
            delay: Seconds the dispatcher will wait before the next call.
            remaining: Remaining quota that caused the delay.
        """
        pass


class LoggingListener(DispatchEventListener):
    """Logs every exchange at DEBUG level and every pacing delay at INFO level."""

    @override
    def on_before_dispatch(self, call: Call, remaining: int) -> None:
        logger.debug(f"{call.id[:26]:<26} | WF | ➡️ {call.method} {call.path} (remaining={remaining})")

    @override
    def on_after_dispatch(self, call: Call, status_code: int | None, remaining: int) -> None:
        if status_code is None:
            logger.debug(f"{call.id[:26]:<26} | WF | ❌ {call.method} {call.path} did not complete")
            return
        logger.debug(
            f"{call.id[:26]:<26} | WF | ⬅️ {call.method} {call.path} -> HTTP {status_code} (remaining={remaining})"
        )

    @override
    def on_pacing_delay(self, delay: float, remaining: int) -> None:
        logger.info(f"{'Dispatcher':<26} | WF | ⏳ Quota low (remaining={remaining}), next call in {delay:.0f}s")
