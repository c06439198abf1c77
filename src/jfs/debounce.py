"""Per-key debouncing on the asyncio event loop."""

import asyncio
import logging
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)

# Quiet period before an edited step body is recompiled.
DEBOUNCE_SECONDS = 0.3


class Debouncer:
    """Coalesce bursts of calls per key into one call after a quiet period.

    Each ``call()`` for a key replaces any pending call for that key and
    restarts its timer. Must be used from a running event loop.
    """

    def __init__(self, delay: float = DEBOUNCE_SECONDS):
        self.delay = delay
        self._pending: Dict[
            Hashable, Tuple[asyncio.TimerHandle, Callable[..., Any], tuple]
        ] = {}

    def call(self, key: Hashable, callback: Callable[..., Any], *args: Any) -> None:
        self.cancel(key)
        loop = asyncio.get_running_loop()
        handle = loop.call_later(self.delay, self._fire, key)
        self._pending[key] = (handle, callback, args)

    def _fire(self, key: Hashable) -> None:
        entry = self._pending.pop(key, None)
        if entry is None:
            return
        _, callback, args = entry
        callback(*args)

    def cancel(self, key: Hashable) -> bool:
        """Drop the pending call for ``key``. Returns whether one existed."""
        entry = self._pending.pop(key, None)
        if entry is None:
            return False
        entry[0].cancel()
        return True

    def flush(self, key: Optional[Hashable] = None) -> None:
        """Run pending calls now (all of them, or just ``key``'s)."""
        keys = [key] if key is not None else list(self._pending)
        for k in keys:
            entry = self._pending.get(k)
            if entry is not None:
                entry[0].cancel()
                self._fire(k)

    def pending(self, key: Hashable) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)


__all__ = ["DEBOUNCE_SECONDS", "Debouncer"]
