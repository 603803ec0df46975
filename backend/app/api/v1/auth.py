"""Authentication and user administration endpoints.

POST   /api/v1/auth/login: exchange username + password for a bearer token
POST   /api/v1/auth/users: create a MANAGER or ENGINEER (admin)
GET    /api/v1/auth/users: list users, newest first (admin)
PUT    /api/v1/auth/password: change own password
PUT    /api/v1/auth/users/{id}/password: force-set a user's password (admin)
DELETE /api/v1/auth/users/{id}: delete a user (admin)
GET    /api/v1/auth/me: caller identity
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session, select

from app.api.deps import (
    CurrentUser,
    builtin_admin,
    get_current_user,
    is_builtin_admin_login,
    require_admin,
)
from app.db.database import get_session
from app.engines.intervals import utcnow
from app.errors import DuplicateUsernameError, UserNotFoundError
from app.models.user import User
from app.models.wire import CamelModel
from app.security.passwords import MIN_PASSWORD_LENGTH, hash_password, verify_password
from app.security.tokens import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


# === Request / Response Models ===


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    token: str
    user: CurrentUser


class CreateUserRequest(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=200)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    role: Literal["MANAGER", "ENGINEER"]


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class SetPasswordRequest(CamelModel):
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class UserResponse(CamelModel):
    id: str
    username: str
    name: str
    role: str
    created_at: datetime
    updated_at: datetime


class MessageResponse(BaseModel):
    message: str


def _to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        name=user.name,
        role=user.role,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


# === Endpoints ===


@router.post("/login", response_model=LoginResponse)
async def login(req: LoginRequest, session: Session = Depends(get_session)) -> LoginResponse:
    """Issue a bearer token. The configured admin credential bypasses the user table."""
    admin = builtin_admin()
    if req.username == admin.username:
        if not is_builtin_admin_login(req.username, req.password):
            logger.warning("Failed admin login")
            raise HTTPException(status_code=401, detail="Invalid credentials")
        user = admin
    else:
        stored = session.exec(select(User).where(User.username == req.username)).first()
        if stored is None or not verify_password(req.password, stored.password_hash):
            logger.warning("Failed login for username %r", req.username)
            raise HTTPException(status_code=401, detail="Invalid credentials")
        user = CurrentUser.from_user(stored)

    token = create_access_token(user_id=user.id, username=user.username, name=user.name, role=user.role)
    return LoginResponse(token=token, user=user)


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(
    req: CreateUserRequest,
    session: Session = Depends(get_session),
    _admin: CurrentUser = Depends(require_admin),
) -> UserResponse:
    """Create a MANAGER or ENGINEER account."""
    if req.username == builtin_admin().username:
        raise DuplicateUsernameError(req.username)
    existing = session.exec(select(User).where(User.username == req.username)).first()
    if existing is not None:
        raise DuplicateUsernameError(req.username)

    user = User(
        username=req.username,
        name=req.name,
        password_hash=hash_password(req.password),
        role=req.role,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Created %s user %s", user.role, user.username)
    return _to_response(user)


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    session: Session = Depends(get_session),
    _admin: CurrentUser = Depends(require_admin),
) -> list[UserResponse]:
    users = session.exec(select(User).order_by(User.created_at.desc())).all()
    return [_to_response(u) for u in users]


@router.put("/password", response_model=MessageResponse)
async def change_own_password(
    req: ChangePasswordRequest,
    session: Session = Depends(get_session),
    caller: CurrentUser = Depends(get_current_user),
) -> MessageResponse:
    """Change the caller's password; the current password must match."""
    if caller.id == builtin_admin().id:
        raise HTTPException(status_code=400, detail="The built-in admin password is set through configuration")

    user = session.get(User, caller.id)
    if user is None:
        raise UserNotFoundError(caller.id)
    if not verify_password(req.current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    user.password_hash = hash_password(req.new_password)
    user.updated_at = utcnow()
    session.add(user)
    session.commit()
    return MessageResponse(message="Password updated successfully")


@router.put("/users/{user_id}/password", response_model=MessageResponse)
async def set_user_password(
    user_id: str,
    req: SetPasswordRequest,
    session: Session = Depends(get_session),
    _admin: CurrentUser = Depends(require_admin),
) -> MessageResponse:
    """Force-set another user's password (no current password needed)."""
    user = session.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    user.password_hash = hash_password(req.new_password)
    user.updated_at = utcnow()
    session.add(user)
    session.commit()
    return MessageResponse(message="User password updated successfully")


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    session: Session = Depends(get_session),
    _admin: CurrentUser = Depends(require_admin),
) -> None:
    user = session.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    session.delete(user)
    session.commit()
    logger.info("Deleted user %s", user_id)


@router.get("/me", response_model=CurrentUser)
async def me(caller: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    return caller
