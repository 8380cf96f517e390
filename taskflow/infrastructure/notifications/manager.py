"""Connection management for per-user realtime websockets."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Iterable
from typing import Any, DefaultDict, Protocol, Set

logger = logging.getLogger(__name__)


class RealtimeConnection(Protocol):
    """Anything able to push a JSON document to one connected client."""

    async def send_json(self, data: Any) -> None:
        ...


class RealtimeHub:
    """Track live connections grouped by user and fan messages out to them.

    The mapping is only a cache of who is reachable right now; it is
    rebuilt by clients reconnecting after a restart.
    """

    def __init__(self) -> None:
        self._connections: DefaultDict[int, Set[RealtimeConnection]] = defaultdict(set)
        self._lock = threading.Lock()

    async def connect(self, user_id: int, websocket: Any) -> None:
        """Accept the websocket connection and register it for ``user_id``."""

        await websocket.accept()
        self.register(user_id, websocket)

    def register(self, user_id: int, connection: RealtimeConnection) -> None:
        with self._lock:
            self._connections[user_id].add(connection)
        logger.debug("Realtime connection registered for user %s", user_id)

    def unregister(self, user_id: int, connection: RealtimeConnection) -> None:
        """Remove ``connection`` from the pool for ``user_id``."""

        with self._lock:
            connections = self._connections.get(user_id)
            if connections is None:
                return
            connections.discard(connection)
            if not connections:
                self._connections.pop(user_id, None)
        logger.debug("Realtime connection removed for user %s", user_id)

    def connection_count(self, user_id: int) -> int:
        with self._lock:
            return len(self._connections.get(user_id, ()))

    async def send_to_user(self, user_id: int, message: dict[str, Any]) -> bool:
        """Send ``message`` to every active connection for ``user_id``.

        Returns ``True`` when at least one connection accepted the message.
        """

        with self._lock:
            connections = list(self._connections.get(user_id, ()))

        delivered = False
        for connection in connections:
            try:
                await connection.send_json(message)
            except Exception:
                logger.debug(
                    "Dropping realtime connection for user %s after send failure",
                    user_id,
                    exc_info=True,
                )
                self.unregister(user_id, connection)
            else:
                delivered = True
        return delivered

    async def broadcast_to_users(
        self, user_ids: Iterable[int], message: dict[str, Any]
    ) -> int:
        """Send ``message`` to each distinct user; returns how many were reached."""

        reached = 0
        for user_id in dict.fromkeys(user_ids):
            if await self.send_to_user(user_id, message):
                reached += 1
        return reached


realtime_hub = RealtimeHub()


__all__ = ["RealtimeConnection", "RealtimeHub", "realtime_hub"]
