from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from portal.models.principal import Principal
from portal.models.user import Role
from portal.services.container import Services, build_services
from portal.services.errors import AuthenticationError, PortalError
from portal.services.token_service import credential_verifier

logger = logging.getLogger(__name__)

# Tokens come from the external auth provider; tokenUrl only feeds the docs UI.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

_services = build_services()


def get_services() -> Services:
    """Process-wide service container. Tests override this dependency."""
    return _services


def to_http_error(exc: PortalError) -> HTTPException:
    """Translate a domain error into the matching HTTP response."""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return HTTPException(status_code=exc.status_code, detail=exc.message, headers=headers)


def require_user(
    request: Request,
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and return the caller's Principal.

    The user id is left on ``request.state`` for the access log line.
    """
    try:
        principal = credential_verifier.verify(raw_token)
    except AuthenticationError as e:
        logger.warning("Bearer token rejected: %s", e.message)
        raise to_http_error(e) from None

    request.state.user_id = principal.user_id
    logger.debug(
        "Token validated for user=%s role=%s", principal.user_id, principal.role
    )
    return principal


def require_any_role(roles: set[Role]):
    """Dependency factory: demand at least one of the given roles.

    Usage: Depends(require_any_role({Role.ADMIN, Role.LECTURER}))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_any_role(roles):
            logger.warning(
                "Access denied: user=%s role=%s required_any=%s",
                principal.user_id,
                principal.role,
                sorted(roles),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


def require_role(role: Role):
    """Dependency factory: demand a specific role."""
    return require_any_role({role})


def principal_uuid(principal: Principal) -> UUID:
    """The caller's user id as a UUID; portal users are always UUID-keyed."""
    try:
        return UUID(principal.user_id)
    except ValueError:
        logger.warning("Token subject %r is not a portal user id", principal.user_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unknown user",
        ) from None
