from .create import handle_create
from .delete import handle_delete
from .get import handle_get
from .patch import handle_patch
from .query import handle_query
from .replace import handle_replace

__all__ = [
    "handle_create",
    "handle_delete",
    "handle_get",
    "handle_patch",
    "handle_query",
    "handle_replace",
]
