from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

# Passwords are hashed and verified exactly as sent, so only these are stripped.
StrippedStr = Annotated[str, StringConstraints(strip_whitespace=True)]


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    login: StrippedStr = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=256)


class TokenResponse(BaseModel):
    user_id: int
    login: str
    access_token: str
    token_type: str = "bearer"


class UserCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    firstname: StrippedStr = Field(default="", max_length=128)
    lastname: StrippedStr = Field(default="", max_length=128)
    login: StrippedStr = Field(min_length=1, max_length=64)
    password: str = Field(min_length=8, max_length=256)


class UserItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    firstname: str
    lastname: str
    login: str
    created_at: datetime


class HealthResponse(BaseModel):
    status: str
    ts: str
    db_backend: str
