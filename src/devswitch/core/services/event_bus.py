"""
EventBus — thread-safe, in-process change notification with bounded replay.

Managers publish here whenever their published state changes; the CLI
(or any other front end) registers callbacks instead of polling.

Thread safety model
───────────────────
- ``_lock`` protects ``_seq``, ``_buffer``, ``_subscribers`` and
  ``_latest``.
- Callbacks are invoked *outside* the lock, in the publishing thread,
  so a slow subscriber never blocks another publisher's bookkeeping.
  A subscriber that raises is logged and skipped; the remaining
  subscribers still receive the event.

Message standard
────────────────
Every event is a dict::

    {
        "v": 1,
        "ts": 1739648400.123,
        "seq": 47,                        # monotonic per bus
        "type": "inventory:refreshed",    # <domain>:<action>
        "key": "node",                    # ecosystem id
        "data": { ... },
    }

Event types: ``inventory:refreshed``, ``active:changed``,
``operation:started``, ``operation:output``, ``operation:finished``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Any, Callable

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = 1

INVENTORY_REFRESHED = "inventory:refreshed"
ACTIVE_CHANGED = "active:changed"
OPERATION_STARTED = "operation:started"
OPERATION_OUTPUT = "operation:output"
OPERATION_FINISHED = "operation:finished"

Subscriber = Callable[[dict], None]


class EventBus:
    """Thread-safe pub/sub with a bounded replay buffer.

    Parameters
    ----------
    buffer_size : int
        Maximum number of events kept for ``recent()``. Older events
        are silently discarded.
    """

    def __init__(self, *, buffer_size: int = 500) -> None:
        self._lock = threading.Lock()
        self._seq: int = 0
        self._buffer: deque[dict] = deque(maxlen=buffer_size)
        self._subscribers: list[Subscriber] = []
        self._latest: dict[str, dict] = {}  # key → latest inventory:refreshed payload

    # ── Properties ──────────────────────────────────────────────

    @property
    def seq(self) -> int:
        """Current sequence number (monotonically increasing)."""
        with self._lock:
            return self._seq

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    # ── Publishing ──────────────────────────────────────────────

    def publish(
        self,
        event_type: str,
        *,
        key: str = "",
        data: dict[str, Any] | None = None,
        **kw: Any,
    ) -> dict:
        """Broadcast an event to every subscriber.

        Parameters
        ----------
        event_type : str
            Event type in ``<domain>:<action>`` format.
        key : str
            Ecosystem id, or empty for bus-wide events.
        data : dict | None
            Event-specific payload.
        **kw :
            Additional top-level fields (``error``, ``duration_s``).

        Returns
        -------
        dict
            The full event dict with ``seq`` assigned.
        """
        with self._lock:
            self._seq += 1
            event: dict[str, Any] = {
                "v": _SCHEMA_VERSION,
                "ts": time.time(),
                "seq": self._seq,
                "type": event_type,
                "key": key,
                "data": data or {},
                **kw,
            }
            self._buffer.append(event)
            if event_type == INVENTORY_REFRESHED and key:
                self._latest[key] = event["data"]
            subscribers = list(self._subscribers)

        # Output lines are far too chatty for DEBUG
        if event_type != OPERATION_OUTPUT:
            logger.debug("event %s key=%s", event_type, key or "-")

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber failed on %s", event_type)

        return event

    # ── Subscribing ─────────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for every future event.

        Returns:
            A zero-argument function that removes the subscription.
            Calling it more than once is harmless.
        """
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def recent(self, *, since: int = 0, event_type: str | None = None) -> list[dict]:
        """Buffered events with ``seq > since``, oldest first."""
        with self._lock:
            return [
                e for e in self._buffer
                if e["seq"] > since and (event_type is None or e["type"] == event_type)
            ]

    def latest(self, key: str) -> dict | None:
        """Payload of the most recent ``inventory:refreshed`` for ``key``."""
        with self._lock:
            return self._latest.get(key)
