"""
Access dependencies for the API routers.

`get_current_user` resolves the bearer token to an active account;
`require_role` and `require_capability` gate endpoints on top of it.
"""
import logging
from typing import Callable, List

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.permissions import Feature, has_capability
from app.database import get_db
from app.models.user import User, UserRole
from app.schemas.auth import TokenData
from app.services import auth as auth_service

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_prefix}/auth/login")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _token_subject(token: str) -> TokenData:
    payload = auth_service.decode_access_token(token)
    if payload is None:
        logger.warning("Rejected bearer token: signature or format invalid")
        raise _unauthorized("Could not validate credentials")
    if payload.get("error") == "TOKEN_EXPIRED":
        logger.info("Rejected bearer token: expired")
        raise _unauthorized("TOKEN_EXPIRED")
    if payload.get("type") != "access":
        logger.warning("Rejected bearer token: type %r", payload.get("type"))
        raise _unauthorized("Invalid token type")
    if not payload.get("sub"):
        logger.warning("Rejected bearer token: no subject")
        raise _unauthorized("Missing subject in token")
    return TokenData(email=payload["sub"], role=payload.get("role"))


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    """Account behind the bearer token; 401 for bad tokens, 403 for disabled accounts."""
    subject = _token_subject(token)
    user = db.query(User).filter(User.email == subject.email).first()
    if user is None:
        logger.warning(f"Token subject {subject.email} has no account")
        raise _unauthorized("User not found")
    if not user.is_active:
        logger.warning(f"Disabled account {subject.email} presented a token")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")
    return user


def require_role(allowed_roles: List[UserRole]) -> Callable:
    """
    Dependency factory that checks if the user has one of the allowed roles.

    Usage:
        @router.post("/institution-admins")
        def create(user: User = Depends(require_role([UserRole.SUPER_ADMIN]))):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return current_user
    return role_checker


def require_capability(*features: Feature) -> Callable:
    """Dependency factory: the user needs at least one of the given features."""
    def capability_checker(current_user: User = Depends(get_current_user)):
        if not any(has_capability(current_user, f) for f in features):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required feature: {' or '.join(f.value for f in features)}"
            )
        return current_user
    return capability_checker
