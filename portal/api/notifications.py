"""Realtime notification socket and its HTTP companions.

WS /notifications/ws?token=<bearer>
  server -> {"event": "connected", "data": {...}} once authenticated
  client -> {"event": "subscribe", "data": {"events": ["gradeUpdate"]}}
  client -> {"event": "ping"}
  server -> {"event": "gradeUpdate" | "enrollmentUpdate", "data": {...}}
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from portal.api.dependencies import get_services, require_role, require_user
from portal.models.principal import Principal
from portal.models.user import Role
from portal.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/stats")
async def get_connection_stats(
    _principal: Annotated[Principal, Depends(require_user)],
    services: Annotated[Services, Depends(get_services)],
) -> dict:
    return services.notifications.get_connection_stats()


@router.post("/test", status_code=status.HTTP_202_ACCEPTED)
async def send_test_notifications(
    principal: Annotated[Principal, Depends(require_role(Role.ADMIN))],
    services: Annotated[Services, Depends(get_services)],
) -> dict:
    logger.info("Test notifications requested by user=%s", principal.user_id)
    await services.notifications.send_test_notifications()
    return {"message": "Test notifications sent"}


@router.websocket("/ws")
async def notifications_socket(
    websocket: WebSocket,
    services: Annotated[Services, Depends(get_services)],
) -> None:
    await websocket.accept()
    session = services.rooms.attach(websocket)
    try:
        if await services.gateway.on_connect(session) is None:
            return
        while True:
            event, data = await session.receive()
            await services.gateway.on_message(session, event, data)
    except WebSocketDisconnect:
        logger.debug("Socket %s closed by client", session.id)
    finally:
        await services.gateway.on_disconnect(session)
        services.rooms.discard(session)
