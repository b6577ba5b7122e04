"""WebSocket connection manager for moderation notifications."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks active WebSocket connections keyed by user_id."""

    def __init__(self) -> None:
        # user_id -> set of active websocket connections
        self._connections: dict[int, set[WebSocket]] = {}
        self._loop: asyncio.AbstractEventLoop | None = None

    async def connect(self, websocket: WebSocket, user_id: int) -> None:
        await websocket.accept()
        self._loop = asyncio.get_running_loop()
        self._connections.setdefault(user_id, set()).add(websocket)
        logger.info("WS connected: user=%s (total=%s)", user_id, self.total_connections)

    def disconnect(self, websocket: WebSocket, user_id: int) -> None:
        conns = self._connections.get(user_id)
        if conns:
            conns.discard(websocket)
            if not conns:
                del self._connections[user_id]
        logger.info("WS disconnected: user=%s (total=%s)", user_id, self.total_connections)

    def is_connected(self, user_id: int) -> bool:
        return bool(self._connections.get(user_id))

    async def send_to_user(self, user_id: int, event: str, data: Any) -> None:
        """Send event to all connections for a user."""
        conns = self._connections.get(user_id, set())
        payload = json.dumps({"event": event, "data": data}, default=str)
        dead: list[WebSocket] = []
        for ws in list(conns):
            try:
                await ws.send_text(payload)
            except Exception:  # noqa: BLE001 - closed sockets are pruned below
                dead.append(ws)
        for ws in dead:
            conns.discard(ws)

    def dispatch(self, user_id: int, event: str, data: Any) -> bool:
        """Schedule a send from sync code (e.g. a threadpool endpoint).

        Returns False when nothing was scheduled: the user has no open socket
        or no event loop has accepted a connection yet.
        """
        if not self.is_connected(user_id) or self._loop is None or self._loop.is_closed():
            return False
        coro = self.send_to_user(user_id, event, data)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._loop.create_task(coro)
        else:
            asyncio.run_coroutine_threadsafe(coro, self._loop)
        return True

    @property
    def total_connections(self) -> int:
        return sum(len(c) for c in self._connections.values())


# Singleton instance used across the app
ws_manager = ConnectionManager()
