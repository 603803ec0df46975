"""User model: managers, engineers and seeded admin accounts."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import uuid4

from sqlmodel import SQLModel
from sqlmodel import Field as SQLField

from app.engines.intervals import utcnow

Role = Literal["ADMIN", "MANAGER", "ENGINEER"]


class User(SQLModel, table=True):
    """An account that can log in. Role never changes after creation."""

    __tablename__ = "user"

    id: str = SQLField(default_factory=lambda: str(uuid4()), primary_key=True)
    username: str = SQLField(index=True, unique=True)
    name: str
    password_hash: str
    role: str = SQLField(index=True)  # "ADMIN" | "MANAGER" | "ENGINEER"
    created_at: datetime = SQLField(default_factory=utcnow)
    updated_at: datetime = SQLField(default_factory=utcnow)
