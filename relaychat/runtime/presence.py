from __future__ import annotations

from typing import Any, Dict, Optional, Protocol


class Socket(Protocol):
    async def send_json(self, data: Any) -> None: ...


class PresenceStore:
    """
    Live connections and the presence map for one relay instance.

    sockets: conn_id -> socket, every accepted connection that has not torn down
    names:   conn_id -> display name, only connections that completed a join

    Mutated only from the relay's event handlers, which run to completion
    on a single event loop, so no locking.
    """

    def __init__(self) -> None:
        self._sockets: Dict[str, Socket] = {}
        self._names: Dict[str, str] = {}

    # ---------- connections ----------

    def attach(self, conn_id: str, socket: Socket) -> None:
        self._sockets[conn_id] = socket

    def discard_socket(self, conn_id: str) -> None:
        # stop sending to a dead socket; the name stays until disconnect()
        self._sockets.pop(conn_id, None)

    def is_connected(self, conn_id: str) -> bool:
        return conn_id in self._sockets

    def sockets(self) -> list[tuple[str, Socket]]:
        return list(self._sockets.items())

    def socket_for(self, conn_id: str) -> Optional[Socket]:
        return self._sockets.get(conn_id)

    # ---------- presence ----------

    def join(self, conn_id: str, name: str) -> Dict[str, str]:
        self._names[conn_id] = name
        return self.snapshot()

    def leave(self, conn_id: str) -> tuple[Optional[str], Dict[str, str]]:
        """Drop the connection entirely. Returns (departing name or None, snapshot)."""
        self._sockets.pop(conn_id, None)
        name = self._names.pop(conn_id, None)
        return name, self.snapshot()

    def name_of(self, conn_id: str) -> Optional[str]:
        return self._names.get(conn_id)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._names)
