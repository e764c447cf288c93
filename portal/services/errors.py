"""Domain error taxonomy shared by the services and the realtime gateway.

Each class carries the HTTP status the API layer maps it to. Notification
delivery failures have no class here: they are logged and
suppressed where they happen and never reach a caller.
"""

from __future__ import annotations


class PortalError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(PortalError):
    status_code = 404


class ForbiddenError(PortalError):
    status_code = 403


class ConflictError(PortalError):
    status_code = 409


class InvalidArgumentError(PortalError, ValueError):
    status_code = 400


class AuthenticationError(PortalError):
    status_code = 401
