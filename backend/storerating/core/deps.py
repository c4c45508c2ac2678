from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from storerating.core.config import Settings
from storerating.core.database import get_db
from storerating.core.errors import AuthenticationError, AuthorizationError
from storerating.core.policy import ADMIN_AREA, Action, enforce
from storerating.core.roles import Role
from storerating.models.user import User
from storerating.services import identity_service


def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Access token required")
    return authorization.split(" ", 1)[1].strip()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user(
    db: Session = Depends(get_db),
    token: str = Depends(get_bearer_token),
    config: Settings = Depends(get_app_settings),
) -> User:
    return identity_service.authenticate(db, token, config)


def require_admin(user: User = Depends(get_current_user)) -> User:
    enforce(user, Action.read, ADMIN_AREA, "Admin access required")
    return user


def require_store_owner(user: User = Depends(get_current_user)) -> User:
    if user.role != Role.store_owner.value:
        raise AuthorizationError("Access denied. Only store owners can access this endpoint.")
    return user
