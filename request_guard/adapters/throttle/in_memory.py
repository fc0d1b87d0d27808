"""In-memory fixed-window throttle store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock guards the whole mapping, shared by ``check`` and the
  background sweep.
- Fixed window, not sliding: a client can get up to ``2 * max_requests``
  through in a short burst that straddles a window boundary.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import replace
from typing import Callable

from request_guard.adapters.throttle.base import (
    UNKNOWN_IDENTIFIER,
    AbstractThrottleStore,
    ThrottleConfig,
    ThrottleDecision,
    ThrottleEntry,
)

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 300.0


class InMemoryThrottleStore(AbstractThrottleStore):
    """Throttle store keeping one fixed-window counter per identifier.

    A window starts at an identifier's first request and lasts
    ``config.window_millis``. Once ``reset_at`` has passed the entry is stale:
    the next ``check`` replaces it, and the periodic sweep deletes it.

    The store owns its mapping exclusively. Inspect it through ``peek`` and
    ``len()``, which never expose the live entries.
    """

    def __init__(
        self,
        *,
        config: ThrottleConfig | None = None,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the store.

        Args:
            config: Default config used when ``check`` is called without one.
            sweep_interval_seconds: Period of the background eviction sweep.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If sweep_interval_seconds is not positive.
        """
        if sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be > 0")

        self._config = config or ThrottleConfig()
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, ThrottleEntry] = {}
        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def config(self) -> ThrottleConfig:
        return self._config

    @property
    def running(self) -> bool:
        sweeper = self._sweeper
        return sweeper is not None and sweeper.is_alive()

    def check(self, identifier: str, config: ThrottleConfig | None = None) -> ThrottleDecision:
        """Count a request for ``identifier`` and decide whether to admit it.

        Args:
            identifier: Client address, account id or namespaced key. Empty
                values are bucketed under ``"unknown"``.
            config: Window/budget for this check; store default if omitted.

        Returns:
            ThrottleDecision. A denied check leaves the count untouched.
        """
        cfg = config or self._config
        key = identifier or UNKNOWN_IDENTIFIER

        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None or entry.reset_at < now:
                entry = ThrottleEntry(identifier=key, count=0, reset_at=now + cfg.window_seconds)
                self._entries[key] = entry

            if entry.count >= cfg.max_requests:
                return ThrottleDecision(
                    admitted=False,
                    limit=cfg.max_requests,
                    remaining=0,
                    reset_at=entry.reset_at,
                    retry_after_seconds=max(0, math.ceil(entry.reset_at - now)),
                )

            entry.count += 1
            return ThrottleDecision(
                admitted=True,
                limit=cfg.max_requests,
                remaining=cfg.max_requests - entry.count,
                reset_at=entry.reset_at,
            )

    def peek(self, identifier: str) -> ThrottleEntry | None:
        """Return a copy of the stored entry for ``identifier``, if any."""
        with self._lock:
            entry = self._entries.get(identifier or UNKNOWN_IDENTIFIER)
            return replace(entry) if entry is not None else None

    def sweep(self) -> int:
        """Evict every entry whose window has already reset.

        Runs under the same lock as ``check`` so a concurrent check never sees
        its entry vanish between read and increment.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._clock()
            stale = [key for key, entry in self._entries.items() if entry.reset_at < now]
            for key in stale:
                del self._entries[key]
            remaining = len(self._entries)

        if stale:
            logger.debug(
                "throttle.sweep",
                extra={"evicted": len(stale), "tracked": remaining},
            )
        return len(stale)

    def reset(self) -> None:
        """Drop all entries."""
        with self._lock:
            self._entries.clear()

    def start(self) -> None:
        """Start the background sweep thread. Calling twice is a no-op."""
        with self._lock:
            if self._sweeper is not None and self._sweeper.is_alive():
                return
            self._stop_event.clear()
            self._sweeper = threading.Thread(
                target=self._sweep_loop,
                name="throttle-sweeper",
                daemon=True,
            )
            self._sweeper.start()

        logger.info(
            "throttle.sweeper_started",
            extra={"interval_s": self._sweep_interval},
        )

    def shutdown(self) -> None:
        """Stop the sweep thread and wait for it to exit."""
        with self._lock:
            sweeper, self._sweeper = self._sweeper, None
        if sweeper is None:
            return

        self._stop_event.set()
        sweeper.join(timeout=5)
        logger.info("throttle.sweeper_stopped", extra={"tracked": len(self)})

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self._sweep_interval):
            try:
                self.sweep()
            except Exception:
                logger.exception("throttle.sweep_failed")
