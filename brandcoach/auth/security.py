"""JWT helpers for bearer authentication.

Access tokens are issued by the external auth provider and signed with the
shared secret from settings; this service only validates them.
"""

from typing import Any

from jose import JWTError, jwt

from brandcoach.config.settings import get_settings


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Validates:
    - JWT signature
    - Expiration time
    - Token type == "access"
    - Presence of sub and email claims

    Raises:
        JWTError: If token is invalid, expired, or wrong type
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )

    if payload.get("type") != "access":
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)

    if not payload.get("sub") or not payload.get("email"):
        msg = "Access token missing sub or email claim"
        raise JWTError(msg)

    return payload
