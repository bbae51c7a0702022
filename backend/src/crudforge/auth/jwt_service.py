"""JWT access token generation and validation."""

import time

import jwt

from crudforge.auth.types import TokenClaims


class JWTError(Exception):
    """Base exception for JWT-related errors."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid or malformed."""

    pass


class JWTService:
    """Issues and validates access tokens carrying the caller's access level.

    Uses HS256 with a shared secret key. Tokens are issued by whatever
    identity service fronts the API; this service only needs the secret.
    """

    ACCESS_TOKEN_TTL = 15 * 60  # 15 minutes

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        """Initialize the JWT service.

        Args:
            secret_key: Secret key for signing tokens (should be at least 32 chars)
            algorithm: JWT algorithm (default HS256)
        """
        self._secret_key = secret_key
        self._algorithm = algorithm

    def create_access_token(self, user_id: str, access_level: int, ttl: int | None = None) -> str:
        """Create a signed access token.

        Args:
            user_id: Subject of the token
            access_level: The caller's access level
            ttl: Lifetime in seconds (defaults to ACCESS_TOKEN_TTL)
        """
        now = int(time.time())
        claims = {
            "sub": user_id,
            "iat": now,
            "exp": now + (self.ACCESS_TOKEN_TTL if ttl is None else ttl),
            "type": "access",
            "access_level": access_level,
        }
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    def decode_token(self, token: str) -> TokenClaims:
        """Decode and validate a JWT token.

        Raises:
            TokenExpiredError: If the token has expired
            InvalidTokenError: If the token is invalid, malformed or carries
                a bad access level
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        access_level = payload.get("access_level", 0)
        if isinstance(access_level, bool) or not isinstance(access_level, int) or access_level < 0:
            raise InvalidTokenError("Invalid token: access_level must be a non-negative integer")

        return TokenClaims(
            user_id=payload.get("sub", ""),
            access_level=access_level,
            exp=payload.get("exp", 0),
            iat=payload.get("iat", 0),
            type=payload.get("type", "access"),
        )
