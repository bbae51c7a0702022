"""Authentication and field-level access control for CRUDForge."""

from crudforge.auth.types import TokenClaims
from crudforge.auth.jwt_service import (
    InvalidTokenError,
    JWTError,
    JWTService,
    TokenExpiredError,
)
from crudforge.auth.middleware import AccessLevelMiddleware, get_access_level
from crudforge.auth.permissions import (
    AccessFilter,
    get_denied_paths,
    prune_object,
)

__all__ = [
    "AccessFilter",
    "AccessLevelMiddleware",
    "InvalidTokenError",
    "JWTError",
    "JWTService",
    "TokenClaims",
    "TokenExpiredError",
    "get_access_level",
    "get_denied_paths",
    "prune_object",
]
