# user_schema.py
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    USER = "user"


# ---------------------------
# Register & Auth (input)
# ---------------------------
# Fields are loosely typed on purpose: the auth service sanitizes and
# validates them and reports every problem at once in "errors".
class RegisterRequest(BaseModel):
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    username: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    secret_key: Optional[str] = Field(default=None, alias="secretKey")
    role: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(BaseModel):
    identifier: Optional[str] = None
    password: Optional[str] = None
    remember_me: bool = Field(default=False, alias="rememberMe")

    model_config = ConfigDict(populate_by_name=True)


class SecretKeyRequest(BaseModel):
    secret_key: Optional[str] = Field(default=None, alias="secretKey")

    model_config = ConfigDict(populate_by_name=True)


class PasswordStrengthRequest(BaseModel):
    password: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------
# Profile (output)
# ---------------------------
class PlanSummary(BaseModel):
    name: str
    end_date: Optional[datetime] = None
    status: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProfileUser(BaseModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: str = Field(..., max_length=50)
    email: EmailStr
    phone: Optional[str] = None
    role: UserRole
    is_active: bool = True
    login_count: int = 0
    last_login_at: Optional[datetime] = None
    plan: Optional[PlanSummary] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProfileRead(BaseModel):
    user: ProfileUser
