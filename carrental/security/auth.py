"""FastAPI dependencies for authentication and role checks."""

import logging
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from carrental.services.auth_service import auth_service

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

NOT_AUTHORIZED = "Not authorized to access this route"


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict[str, Any]:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=NOT_AUTHORIZED,
        headers={"WWW-Authenticate": "Bearer"},
    )
    token = credentials.credentials if credentials else request.cookies.get("token")
    if not token:
        raise credentials_exception

    try:
        claims = auth_service.decode_token(token)
    except JWTError:
        raise credentials_exception

    if claims.get("sub") is None or claims.get("jti") is None or auth_service.is_revoked(claims):
        raise credentials_exception

    user = auth_service.get_user(claims["sub"])
    if user is None:
        raise credentials_exception

    request.state.token_claims = claims
    return user


def authorize(*roles: str):
    """Dependency factory restricting a route to the given roles."""

    def role_checker(current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
        if current_user.get("role") not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User role {current_user.get('role')} is not authorized to access this route",
            )
        return current_user

    return role_checker
