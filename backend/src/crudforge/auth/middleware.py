"""Middleware resolving the caller's access level for each request."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from crudforge.auth.jwt_service import JWTError, JWTService


class AccessLevelMiddleware(BaseHTTPMiddleware):
    """Sets ``request.state.access_level`` for every request.

    With a JWT service the level comes from a valid Bearer access token and is
    None otherwise. Without one (auth disabled) every request gets
    ``default_access_level``.

    The middleware does NOT reject unauthenticated requests - the route layer
    decides what an unknown caller may do.
    """

    def __init__(self, app, jwt_service: JWTService | None = None, default_access_level: int = 0):
        """Initialize middleware.

        Args:
            app: The ASGI application
            jwt_service: JWT service for token validation, None to disable auth
            default_access_level: Level given to every request when auth is disabled
        """
        super().__init__(app)
        self._jwt_service = jwt_service
        self._default_access_level = default_access_level

    async def dispatch(self, request: Request, call_next) -> Response:
        """Process the request and extract the access level."""
        if self._jwt_service is None:
            request.state.access_level = self._default_access_level
            return await call_next(request)

        request.state.access_level = None

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header[7:]  # Remove "Bearer " prefix
            try:
                claims = self._jwt_service.decode_token(token)

                # Only accept access tokens
                if claims.type == "access":
                    request.state.access_level = claims.access_level
            except JWTError:
                # Invalid token - leave access_level as None
                pass

        return await call_next(request)


def get_access_level(request: Request) -> int | None:
    """Get the caller's access level from the request state, None if unauthenticated."""
    return getattr(request.state, "access_level", None)

