"""
Security Module - Authentication context & authorization

Tokens are issued by the external auth service; this module only verifies
them and exposes the caller's organization and role to the routers.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, List
from jose import JWTError, jwt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ledgerbook.core.config import settings
from ledgerbook.core.exceptions import AuthenticationFailed, PermissionDenied

ROLES = ("admin", "accountant", "viewer")

# Bearer token scheme
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Verified identity of the caller"""
    user_id: str
    organization_id: int
    role: str


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token"""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)
) -> AuthContext:
    """
    Dependency to get the caller's auth context from JWT token.
    Supports both Authorization header and cookies.
    """
    token = None

    if credentials:
        token = credentials.credentials

    if not token:
        token = request.cookies.get("access_token")

    if not token:
        raise AuthenticationFailed("Not authenticated")

    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationFailed("Invalid or expired token")

    user_id = payload.get("sub")
    organization_id = payload.get("org")
    role = payload.get("role", "viewer")
    if user_id is None or organization_id is None:
        raise AuthenticationFailed("Invalid token payload")

    try:
        organization_id = int(organization_id)
    except (ValueError, TypeError):
        raise AuthenticationFailed("Invalid token payload")

    if role not in ROLES:
        raise AuthenticationFailed(f"Unknown role '{role}'")

    return AuthContext(user_id=str(user_id), organization_id=organization_id, role=role)


class RoleChecker:
    """Dependency for checking the caller's role"""

    def __init__(self, allowed_roles: List[str]):
        self.allowed_roles = set(allowed_roles)

    def __call__(self, user: AuthContext = Depends(get_current_user)) -> AuthContext:
        if user.role not in self.allowed_roles:
            raise PermissionDenied(f"Role '{user.role}' is not authorized for this action")
        return user


can_write = RoleChecker(["admin", "accountant"])
