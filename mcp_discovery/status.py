"""
Per-server connection status with change notification.

Listeners are called synchronously, in subscription order, on every status
update, including updates that repeat the current state. They are removed
only on explicit request.

Usage:
    status = StatusRegistry()
    unsubscribe = status.add_listener(lambda name, state: print(name, state))
    ...
    unsubscribe()
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List

from mcp_discovery.types import ConnectionState

logger = logging.getLogger(__name__)

StatusChangeListener = Callable[[str, ConnectionState], None]


class StatusRegistry:
    """
    Map of server name to ConnectionState.

    Only the connection lifecycle writes statuses; anyone may read them.
    Servers never seen read as DISCONNECTED.
    """

    def __init__(self) -> None:
        self._statuses: Dict[str, ConnectionState] = {}
        self._listeners: List[StatusChangeListener] = []
        self._lock = threading.Lock()

    def get(self, server_name: str) -> ConnectionState:
        """Current state of a server (DISCONNECTED if never set)."""
        with self._lock:
            return self._statuses.get(server_name, ConnectionState.DISCONNECTED)

    def get_all(self) -> Dict[str, ConnectionState]:
        """Snapshot copy of every known status."""
        with self._lock:
            return dict(self._statuses)

    def add_listener(self, listener: StatusChangeListener) -> Callable[[], None]:
        """
        Subscribe to status changes.

        Returns:
            Callable that removes this listener
        """
        with self._lock:
            self._listeners.append(listener)
        return lambda: self.remove_listener(listener)

    def remove_listener(self, listener: StatusChangeListener) -> None:
        """Unsubscribe a listener. Unknown listeners are ignored."""
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def set_status(self, server_name: str, state: ConnectionState) -> None:
        """
        Record a server's state and notify every listener.

        Listeners run outside the lock so they may read statuses. A listener
        that raises is logged and the remaining listeners still run.
        """
        with self._lock:
            self._statuses[server_name] = state
            listeners = list(self._listeners)

        logger.debug(f"MCP server '{server_name}' is {state.value}")
        for listener in listeners:
            try:
                listener(server_name, state)
            except Exception:
                logger.exception(f"Status listener failed for MCP server '{server_name}'")
