"""Type definitions for authentication."""

from dataclasses import dataclass


@dataclass
class TokenClaims:
    """Claims embedded in a JWT token.

    Attributes:
        user_id: The authenticated caller's ID
        access_level: The caller's access level, compared against field thresholds
        exp: Token expiration timestamp
        iat: Token issued-at timestamp
        type: Token type (only "access" is accepted by the middleware)
    """

    user_id: str
    access_level: int = 0
    exp: int = 0
    iat: int = 0
    type: str = "access"
