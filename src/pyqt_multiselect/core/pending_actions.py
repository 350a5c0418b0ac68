"""
Deferred work executed once per request cycle.

Changes that need a round-trip to the remote view (pushing the current
window, echoing the selection, switching filter mode) are queued here under a
name and run together at one synchronization point. Queuing the same name
twice keeps a single entry at its original position with the newest action,
so bursts of requests collapse into one fetch.

Usage:
    queue = PendingActionQueue()
    queue.run_before_response("push_window", self._push_window)
    queue.run_before_response("push_window", self._push_window)  # coalesced
    queue.drain()  # runs once
"""

import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)


class PendingActionQueue:
    """Ordered, name-deduplicated queue of zero-argument actions."""

    def __init__(self):
        self._actions: Dict[str, Callable[[], None]] = {}

    def run_before_response(self, name: str, action: Callable[[], None]) -> None:
        self._actions[name] = action

    def discard(self, name: str) -> None:
        self._actions.pop(name, None)

    def clear(self) -> None:
        self._actions.clear()

    @property
    def pending(self) -> List[str]:
        return list(self._actions)

    def drain(self) -> int:
        """
        Run every queued action in order.

        An action that raises is dropped (not retried) and the exception
        propagates; actions queued after it stay pending for the next drain.

        Returns:
            Number of actions executed
        """
        executed = 0
        while self._actions:
            name = next(iter(self._actions))
            action = self._actions.pop(name)
            logger.debug(f"Running pending action '{name}'")
            action()
            executed += 1
        return executed

    def __len__(self) -> int:
        return len(self._actions)

    def __bool__(self) -> bool:
        return bool(self._actions)
