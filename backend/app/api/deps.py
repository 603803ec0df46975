"""Shared FastAPI dependencies: caller identity, role checks, lifecycle handle."""

from __future__ import annotations

import logging
import secrets

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlmodel import Session

from app.config import settings
from app.db.database import get_session
from app.lifecycle.manager import TaskLifecycleManager
from app.models.user import Role, User
from app.security.tokens import decode_access_token

logger = logging.getLogger(__name__)

http_bearer = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """The authenticated caller, as currently persisted."""

    id: str
    username: str
    name: str
    role: Role

    @classmethod
    def from_user(cls, user: User) -> CurrentUser:
        return cls(id=user.id, username=user.username, name=user.name, role=user.role)


def builtin_admin() -> CurrentUser:
    """The configured admin account that lives outside the user table."""
    return CurrentUser(
        id=settings.admin_username,
        username=settings.admin_username,
        name=settings.admin_display_name,
        role="ADMIN",
    )


def is_builtin_admin_login(username: str, password: str) -> bool:
    return secrets.compare_digest(username, settings.admin_username) and secrets.compare_digest(
        password, settings.admin_password
    )


def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    session: Session = Depends(get_session),
) -> CurrentUser:
    """Decode the bearer token and re-validate it against the user store."""
    if creds is None:
        raise HTTPException(status_code=401, detail="Access token required")

    try:
        payload = decode_access_token(creds.credentials)
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=403, detail="Invalid or expired token")

    admin = builtin_admin()
    if payload["sub"] == admin.id and payload["role"] == admin.role:
        if payload["username"] != admin.username:
            raise HTTPException(status_code=403, detail="User credentials have changed. Please login again.")
        return admin

    user = session.get(User, payload["sub"])
    if user is None:
        raise HTTPException(status_code=403, detail="User no longer exists. Please login again.")
    if user.role != payload["role"]:
        raise HTTPException(status_code=403, detail="User role has changed. Please login again.")
    if user.username != payload["username"]:
        raise HTTPException(status_code=403, detail="User credentials have changed. Please login again.")
    return CurrentUser.from_user(user)


def require_roles(*roles: str):
    """Dependency factory: the caller's role must be one of ``roles``."""
    allowed = frozenset(roles)

    def _dep(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            logger.warning("Role %s denied (needs one of %s)", user.role, sorted(allowed))
            raise HTTPException(status_code=403, detail=f"{' or '.join(r.title() for r in roles)} access required")
        return user

    return _dep


require_admin = require_roles("ADMIN")
require_manager = require_roles("MANAGER", "ADMIN")


def get_task_lifecycle(request: Request) -> TaskLifecycleManager:
    """Lifecycle manager wired onto app.state at startup."""
    manager = getattr(request.app.state, "task_lifecycle", None)
    if manager is None:
        raise HTTPException(status_code=503, detail="Task lifecycle manager not initialized.")
    return manager
