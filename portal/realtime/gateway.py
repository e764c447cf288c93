"""Realtime notification gateway.

Connection lifecycle:

    Connecting -> Authenticating -> Authenticated -> Disconnected
                        |                 (joined user:{id}, role:{role},
                        |                  plus event:{name} on subscribe)
                        +-- missing/invalid credential: send "error", close

Grade and enrollment updates go to the target student's own room plus the
lecturer and admin role rooms, so every connected lecturer and admin sees
every update. Delivery is at-most-once: no acknowledgement, no retry, and
nothing is queued for users who are offline.
"""

from __future__ import annotations

import logging
from typing import Any

from portal.core.metrics import NOTIFICATIONS_EMITTED, REALTIME_AUTH_FAILURES
from portal.models.notification import (
    SUBSCRIBABLE_EVENTS,
    EnrollmentUpdate,
    GradeUpdate,
    NotificationEvent,
    event_room,
    iso_timestamp,
    role_room,
    user_room,
)
from portal.models.principal import Principal
from portal.models.user import Role
from portal.realtime.registry import ConnectionRegistry
from portal.realtime.transport import POLICY_VIOLATION, Broadcaster, Session
from portal.services.errors import AuthenticationError
from portal.services.token_service import CredentialVerifier

logger = logging.getLogger(__name__)


def fan_out_rooms(student_id: str) -> tuple[str, ...]:
    return (
        user_room(student_id),
        role_room(Role.LECTURER),
        role_room(Role.ADMIN),
    )


class NotificationGateway:
    def __init__(
        self,
        registry: ConnectionRegistry,
        broadcaster: Broadcaster,
        verifier: CredentialVerifier,
    ) -> None:
        self._registry = registry
        self._broadcaster = broadcaster
        self._verifier = verifier

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    async def on_connect(self, session: Session) -> Principal | None:
        """Authenticate a new connection. Returns None if it was rejected."""
        token = session.credential()
        if not token:
            logger.warning(
                "Connection %s rejected: no credential",
                session.id,
                extra={"connection_id": session.id},
            )
            REALTIME_AUTH_FAILURES.labels(reason="missing").inc()
            await self._reject(session)
            return None

        try:
            principal = self._verifier.verify(token)
        except AuthenticationError as e:
            logger.warning(
                "Connection %s rejected: %s",
                session.id,
                e.message,
                extra={"connection_id": session.id},
            )
            REALTIME_AUTH_FAILURES.labels(reason="invalid").inc()
            await self._reject(session)
            return None

        session.principal = principal
        self._registry.register(principal.user_id, principal.role, session)
        await session.join(user_room(principal.user_id))
        await session.join(role_room(principal.role))

        logger.info(
            "Client connected: %s (user=%s role=%s)",
            session.id,
            principal.user_id,
            principal.role,
            extra={"connection_id": session.id, "user_id": principal.user_id},
        )
        await session.emit(
            "connected",
            {
                "message": "Successfully connected to notifications",
                "userId": principal.user_id,
                "timestamp": iso_timestamp(),
            },
        )
        return principal

    async def on_disconnect(self, session: Session) -> None:
        principal = session.principal
        if principal is None:
            logger.info("Client disconnected: %s", session.id)
            return
        self._registry.unregister(principal.user_id, session)
        logger.info(
            "Client disconnected: %s (user=%s)",
            session.id,
            principal.user_id,
            extra={"connection_id": session.id, "user_id": principal.user_id},
        )

    async def on_message(self, session: Session, event: str, payload: Any) -> None:
        if session.principal is None:
            logger.debug("Ignoring %r from unauthenticated %s", event, session.id)
            return

        if event == "subscribe":
            await self._handle_subscribe(session, payload)
        elif event == "ping":
            await session.emit("pong", {"timestamp": iso_timestamp()})
        else:
            logger.debug(
                "Ignoring unknown event %r from %s",
                event,
                session.id,
                extra={"connection_id": session.id, "event": event},
            )

    async def _handle_subscribe(self, session: Session, payload: Any) -> None:
        events = payload.get("events") if isinstance(payload, dict) else None
        if not isinstance(events, list):
            events = []

        for name in events:
            # Unknown names are silently skipped, not errors.
            if isinstance(name, str) and name in SUBSCRIBABLE_EVENTS:
                await session.join(event_room(name))
                logger.info("Client %s subscribed to %s", session.id, name)

        await session.emit("subscribed", {"events": events, "timestamp": iso_timestamp()})

    async def _reject(self, session: Session) -> None:
        await session.emit("error", {"message": "Authentication failed"})
        await session.disconnect(POLICY_VIOLATION)

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    async def emit_grade_update(self, event: GradeUpdate) -> None:
        await self._fan_out(event)
        logger.info(
            "Grade update sent: %s - %s%% (student=%s)",
            event.assignment_title,
            event.grade,
            event.student_id,
        )

    async def emit_enrollment_update(self, event: EnrollmentUpdate) -> None:
        await self._fan_out(event)
        logger.info(
            "Enrollment update sent: %s in %s (student=%s)",
            event.action,
            event.course_name,
            event.student_id,
        )

    async def _fan_out(self, event: NotificationEvent) -> None:
        payload = event.to_payload()
        for room in fan_out_rooms(event.student_id):
            await self._broadcaster.to_room(room).emit(event.kind.value, payload)
        NOTIFICATIONS_EMITTED.labels(kind=event.kind.value).inc()

    async def send_to_user(self, user_id: str, event: str, payload: Any) -> bool:
        session = self._registry.lookup(user_id)
        if session is None:
            logger.warning("User %s not connected, cannot send %s", user_id, event)
            return False
        await session.emit(event, payload)
        return True

    async def broadcast(self, event: str, payload: Any) -> None:
        await self._broadcaster.emit_all(event, payload)
        logger.info("Broadcast %s to all connected users", event)

    def get_connection_stats(self) -> dict[str, object]:
        return {
            "connectedUsers": self._registry.count(),
            "timestamp": iso_timestamp(),
        }
