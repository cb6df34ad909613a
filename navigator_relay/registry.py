"""
Connection Registry — live SSE connections indexed by session id.

Each streaming connection gets a freshly minted, opaque session id and a
``ConnectionHandle`` whose inbox receives the JSON-RPC messages POSTed for
that session. The registry is owned by the application and shared by every
connection task; all mutations are serialized by an ``asyncio.Lock``.

Lifecycle per session id: UNALLOCATED -> OPEN -> CLOSED. A closed id is
never reopened; reconnecting clients always get a new one.
"""
import uuid
import asyncio
import logging
from typing import Any
from collections.abc import AsyncIterator

from .exceptions import ConnectionClosed, SessionNotFound

logger = logging.getLogger("navigator.relay")

_CLOSED = object()


class ConnectionHandle:
    """Inbound endpoint of a single streaming connection."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<ConnectionHandle {self.session_id} [{state}]>"

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, message: Any) -> None:
        """Queue an inbound message for the connection task.

        Raises:
            ConnectionClosed: If the handle was already closed.
        """
        if self._closed:
            raise ConnectionClosed(f"Connection {self.session_id} is closed")
        self._inbox.put_nowait(message)

    async def receive(self) -> Any | None:
        """Wait for the next inbound message.

        Returns:
            The message, or None once the handle is closed.
        """
        message = await self._inbox.get()
        if message is _CLOSED:
            # keep the sentinel for any other waiter
            self._inbox.put_nowait(_CLOSED)
            return None
        return message

    def close(self) -> None:
        """Stop accepting messages and wake up the receiver. Idempotent."""
        if not self._closed:
            self._closed = True
            self._inbox.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[Any]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Any]:
        while True:
            message = await self.receive()
            if message is None:
                return
            yield message


class ConnectionRegistry:
    """Mapping of open session ids to their connection handles."""

    def __init__(self):
        self._connections: dict[str, ConnectionHandle] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._connections

    def session_ids(self) -> list[str]:
        return list(self._connections)

    def get(self, session_id: str) -> ConnectionHandle | None:
        return self._connections.get(session_id)

    async def open(self) -> tuple[str, ConnectionHandle]:
        """Mint a new session id and register its handle."""
        async with self._lock:
            session_id = uuid.uuid4().hex
            while session_id in self._connections:
                session_id = uuid.uuid4().hex
            handle = ConnectionHandle(session_id)
            self._connections[session_id] = handle
        logger.debug("Connection opened: session=%s", session_id)
        return session_id, handle

    async def route(self, session_id: str, message: Any) -> None:
        """Forward an inbound message to the connection for session_id.

        Raises:
            SessionNotFound: If no open connection has that id.
        """
        async with self._lock:
            handle = self._connections.get(session_id)
            if handle is None:
                raise SessionNotFound(session_id)
            try:
                handle.deliver(message)
            except ConnectionClosed as err:
                raise SessionNotFound(session_id) from err

    async def close(self, session_id: str) -> bool:
        """Unregister and close a connection.

        Returns:
            True if a connection was closed, False if the id was unknown.
        """
        async with self._lock:
            handle = self._connections.pop(session_id, None)
            if handle is None:
                return False
            handle.close()
        logger.debug("Connection closed: session=%s", session_id)
        return True

    async def close_all(self) -> int:
        """Close every registered connection, returning how many were open."""
        async with self._lock:
            handles = list(self._connections.values())
            self._connections.clear()
            for handle in handles:
                handle.close()
        if handles:
            logger.info("Closed %d open connection(s)", len(handles))
        return len(handles)
