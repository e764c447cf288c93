"""Room-based realtime transport on top of Starlette WebSockets.

The gateway talks to two small interfaces:

  Session      one client connection: join a room, emit to it, close it
  Broadcaster  server side, ``to_room(room).emit(event, payload)``

``RoomServer`` implements both for in-process WebSockets. Frames are JSON
objects in both directions:

    {"event": "gradeUpdate", "data": {...}}

Room membership lives only here; ``discard`` drops every room a session
joined once its socket goes away.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Protocol

from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from portal.models.principal import Principal

logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000
POLICY_VIOLATION = 1008


class Session(Protocol):
    id: str
    principal: Principal | None

    def credential(self) -> str | None: ...
    async def join(self, room: str) -> None: ...
    async def emit(self, event: str, payload: Any) -> None: ...
    async def disconnect(self, code: int = NORMAL_CLOSURE) -> None: ...


class RoomTarget(Protocol):
    async def emit(self, event: str, payload: Any) -> None: ...


class Broadcaster(Protocol):
    def to_room(self, room: str) -> RoomTarget: ...
    async def emit_all(self, event: str, payload: Any) -> None: ...


class WebSocketSession:
    """A single accepted WebSocket, addressable by room."""

    def __init__(self, websocket: WebSocket, server: RoomServer) -> None:
        self.id = f"ws-{uuid.uuid4().hex[:12]}"
        self.principal: Principal | None = None
        self._websocket = websocket
        self._server = server

    def credential(self) -> str | None:
        """Bearer token from the ``token`` query param or Authorization header."""
        token = self._websocket.query_params.get("token")
        if token:
            return token
        auth = self._websocket.headers.get("authorization", "")
        scheme, _, value = auth.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
        return None

    async def join(self, room: str) -> None:
        self._server.join(self, room)

    async def emit(self, event: str, payload: Any) -> None:
        await self._websocket.send_json({"event": event, "data": payload})

    async def receive(self) -> tuple[str, Any]:
        """Wait for the next client frame.

        Binary frames and text that is not a ``{"event": ...}`` object yield
        ``("", None)``. Raises WebSocketDisconnect once the client is gone.
        """
        message = await self._websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(
                message.get("code", NORMAL_CLOSURE), message.get("reason")
            )
        text = message.get("text")
        if text is None:
            return "", None
        try:
            frame = json.loads(text)
        except ValueError:
            return "", None
        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            return "", None
        return frame["event"], frame.get("data")

    async def disconnect(self, code: int = NORMAL_CLOSURE) -> None:
        if self._websocket.application_state != WebSocketState.DISCONNECTED:
            await self._websocket.close(code=code)


class _RoomTarget:
    def __init__(self, server: RoomServer, room: str) -> None:
        self._server = server
        self._room = room

    async def emit(self, event: str, payload: Any) -> None:
        await self._server.deliver(self._server.members(self._room), event, payload)


class RoomServer:
    """In-process room membership and fan-out for WebSocket sessions."""

    def __init__(self) -> None:
        self._rooms: dict[str, set[WebSocketSession]] = {}
        self._sessions: set[WebSocketSession] = set()

    def attach(self, websocket: WebSocket) -> WebSocketSession:
        session = WebSocketSession(websocket, self)
        self._sessions.add(session)
        return session

    def join(self, session: WebSocketSession, room: str) -> None:
        self._rooms.setdefault(room, set()).add(session)

    def discard(self, session: WebSocketSession) -> None:
        self._sessions.discard(session)
        for room in [r for r, members in self._rooms.items() if session in members]:
            members = self._rooms[room]
            members.discard(session)
            if not members:
                del self._rooms[room]

    def members(self, room: str) -> list[WebSocketSession]:
        return list(self._rooms.get(room, ()))

    def to_room(self, room: str) -> _RoomTarget:
        return _RoomTarget(self, room)

    async def emit_all(self, event: str, payload: Any) -> None:
        await self.deliver(list(self._sessions), event, payload)

    async def deliver(
        self, sessions: list[WebSocketSession], event: str, payload: Any
    ) -> None:
        for session in sessions:
            try:
                await session.emit(event, payload)
            except Exception:
                # Best-effort delivery: a dead socket must not stop the fan-out.
                logger.warning(
                    "Dropping session %s after failed send of %s",
                    session.id,
                    event,
                    exc_info=True,
                    extra={"connection_id": session.id, "event": event},
                )
                self.discard(session)
