"""
Request dependencies: bearer-token principal, role guards and the category service
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.services.category_service import CategoryService
from app.services.category_store import CategoryStore
from app.services.image_storage import LocalImageStorage
from app.utils.security import decode_token

logger = logging.getLogger(__name__)

http_bearer = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer)
) -> Dict[str, Any]:
    """Verified token claims of the caller"""
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    if payload is None:
        logger.warning("Token decode failed - invalid or expired token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing subject",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


def require_roles(allowed_roles: List[str]):
    """
    Dependency factory for role-based access control

    Usage:
        @router.delete("/{category_id}")
        async def endpoint(principal = Depends(require_roles(["administrator"]))):
            ...
    """
    async def role_checker(
        principal: Dict[str, Any] = Depends(get_current_principal)
    ) -> Dict[str, Any]:
        if principal.get("role") not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {allowed_roles}"
            )
        return principal

    return role_checker


require_category_admin = require_roles(settings.CATEGORY_ADMIN_ROLES)


def get_image_storage() -> LocalImageStorage:
    return LocalImageStorage()


def get_category_service(
    db: Session = Depends(get_db),
    storage: LocalImageStorage = Depends(get_image_storage)
) -> CategoryService:
    return CategoryService(CategoryStore(db), storage)
