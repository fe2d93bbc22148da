from dynarouter.api.main import create_app
from dynarouter.api.router import create_router
from dynarouter.core.errors import (
    AccessDeniedError,
    AuthenticationError,
    BadRequestError,
    ConfigurationError,
    InternalServerError,
    ItemExistsError,
    NotFoundError,
    RouterError,
)
from dynarouter.core.authz import Allowed, Denied
from dynarouter.core.schema import EntitySchema, KeyDefinition
from dynarouter.core.store import EntityStore, MemoryStore, StoreError

__version__ = "0.1.0"

__all__ = [
    "AccessDeniedError",
    "Allowed",
    "AuthenticationError",
    "BadRequestError",
    "ConfigurationError",
    "Denied",
    "EntitySchema",
    "EntityStore",
    "InternalServerError",
    "ItemExistsError",
    "KeyDefinition",
    "MemoryStore",
    "NotFoundError",
    "RouterError",
    "StoreError",
    "create_app",
    "create_router",
]
