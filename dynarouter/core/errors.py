from __future__ import annotations

from typing import Any, Optional


class ConfigurationError(ValueError):
    """Raised while building a router, never per request."""


class RouterError(Exception):
    """
    Base for every error a pipeline raises on purpose.

    `extra` carries the cause for server-side diagnostics. It is never
    rendered to the client.
    """

    status: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, extra: Any = None):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"name": self.name, "message": self.message}


class BadRequestError(RouterError):
    status = 400
    default_message = "Bad request"


class AuthenticationError(RouterError):
    status = 401
    default_message = "Authentication required"


class AccessDeniedError(RouterError):
    status = 403
    default_message = "Access denied"


class NotFoundError(RouterError):
    status = 404
    default_message = "Resource not found"


class ItemExistsError(RouterError):
    status = 409
    default_message = "The item already exists and cannot be overwritten"


class InternalServerError(RouterError):
    status = 500
    default_message = "Internal Server Error"
