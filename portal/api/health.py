"""Health and readiness endpoints.

  /health (liveness): is the process alive? Also reports realtime state.
  /ready (readiness): can this instance take traffic right now?

The realtime registry is process-local, so ``connected_users`` and
``connected_by_role`` describe this instance only.
"""

from __future__ import annotations

from collections import Counter
from typing import Annotated

from fastapi import APIRouter, Depends, Response

from portal.api.dependencies import get_services
from portal.models.user import Role
from portal.services.container import Services

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(services: Annotated[Services, Depends(get_services)]) -> dict:
    sessions = services.registry.sessions()
    by_role = Counter(s.role.value for s in sessions)
    return {
        "status": "ok",
        "checks": {
            "storage": "in_memory",
            "realtime": {
                "connected_users": len(sessions),
                "connected_by_role": {role.value: by_role[role.value] for role in Role},
            },
        },
    }


@router.get("/ready")
async def ready() -> Response:
    # No external dependencies are critical yet: storage is in-process.
    return Response(status_code=200)
