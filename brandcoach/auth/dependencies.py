"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current user extraction from JWT
- Role-based access control
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from brandcoach.auth.permissions import UserRole, has_permission
from brandcoach.auth.schemas import UserResponse
from brandcoach.auth.security import decode_access_token
from brandcoach.core.context import set_user_id


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Args:
        request: FastAPI request

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def user_from_token(token: str) -> UserResponse:
    """Validate an access token and build the user it describes.

    Unknown roles degrade to ``UserRole.USER``.

    Raises:
        JWTError: If the token is invalid or expired
    """
    payload = decode_access_token(token)

    try:
        role = UserRole(payload.get("role", UserRole.USER.value))
    except ValueError:
        role = UserRole.USER

    return UserResponse(
        id=str(payload["sub"]),
        email=payload["email"],
        role=role,
        name=payload.get("name", ""),
    )


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> UserResponse:
    """Get current authenticated user from JWT token.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user = user_from_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    # Set user_id in context for logging
    set_user_id(user.id)
    return user


def require_role(minimum_role: UserRole):
    """Create dependency requiring at least ``minimum_role``.

    Args:
        minimum_role: Lowest role in the hierarchy that is allowed

    Returns:
        Dependency function
    """

    async def role_checker(
        user: Annotated[UserResponse, Depends(get_current_user)],
    ) -> UserResponse:
        if not has_permission(user.role, minimum_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permission",
            )

        return user

    return role_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

# Basic authenticated user
CurrentUser = Annotated[UserResponse, Depends(get_current_user)]

# Role-specific dependencies
AdminUser = Annotated[UserResponse, Depends(require_role(UserRole.ADMIN))]
