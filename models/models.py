# chronodesk_backend/models.py
from typing import Optional, List
from datetime import datetime, timezone
from enum import Enum
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Index


# ============================================================
# TIME
# ============================================================
def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands timestamps back without tzinfo; they are stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================
# ENUMS
# ============================================================
class UserRole(str, Enum):
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    USER = "user"


class PlanStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    INACTIVE = "inactive"


class ClosedReason(str, Enum):
    LOGOUT = "logout"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_INVALID = "token_invalid"
    PLAN_EXPIRED = "plan_expired"
    PLAN_INACTIVE = "plan_inactive"
    PLAN_NOT_FOUND = "plan_not_found"
    USER_INACTIVE = "user_inactive"
    USER_NOT_FOUND = "user_not_found"
    SESSION_REPLACED = "session_replaced"
    REVOKED = "revoked"


# ============================================================
# PLAN (subscription entitlement)
# ============================================================
class Plan(SQLModel, table=True):
    __tablename__ = "plan"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(default="Basic", max_length=100)
    description: Optional[str] = Field(default="Basic plan", max_length=500)

    # Validity window; a plan without end_date never expires
    start_date: datetime = Field(default_factory=utcnow)
    end_date: Optional[datetime] = Field(default=None, index=True)

    # Capacity
    max_supervisors: int = Field(default=0, ge=0)
    max_users: int = Field(default=1, ge=0)

    # Secret key presented at registration to join this plan
    main_token: str = Field(max_length=64, unique=True, index=True, nullable=False)

    is_extension: bool = Field(default=False)
    status: str = Field(default=PlanStatus.ACTIVE.value, max_length=20, index=True)

    created_by: Optional[str] = Field(default="system", max_length=50)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    users: List["User"] = Relationship(back_populates="plan")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = as_utc(now) if now else utcnow()
        return self.end_date is not None and as_utc(self.end_date) < now


# ============================================================
# USER
# ============================================================
class User(SQLModel, table=True):
    __tablename__ = "user"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Ciphertext columns, written and read through CredentialStore only
    first_name: str = Field(nullable=False)
    last_name: str = Field(nullable=False)
    phone: Optional[str] = None

    username: str = Field(max_length=50, unique=True, index=True, nullable=False)
    email: str = Field(max_length=100, unique=True, index=True, nullable=False)
    password_hash: str = Field(nullable=False)

    role: str = Field(default=UserRole.USER.value, max_length=20, index=True)
    is_active: bool = Field(default=True)

    plan_id: Optional[int] = Field(default=None, foreign_key="plan.id", index=True)

    # Login bookkeeping
    login_count: int = Field(default=0)
    last_login_at: Optional[datetime] = None

    created_by: Optional[str] = Field(default=None, max_length=50)
    updated_by: Optional[str] = Field(default=None, max_length=50)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    # Relations
    plan: Optional["Plan"] = Relationship(back_populates="users")
    login_logs: List["LoginLog"] = Relationship(back_populates="user")


# ============================================================
# LOGIN LOG (session ledger entry)
# ============================================================
class LoginLog(SQLModel, table=True):
    __tablename__ = "login_log"
    __table_args__ = (
        Index("ix_login_log_user_token_active", "user_id", "session_token", "is_active_session"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)

    # The exact bearer token issued at login; only this token can mark the entry active
    session_token: str = Field(nullable=False, index=True)
    refresh_token: Optional[str] = Field(default=None, index=True)

    is_active_session: bool = Field(default=True, index=True)
    login_time: datetime = Field(default_factory=utcnow)
    logout_time: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None

    ip_address: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = Field(default=None, max_length=500)
    closed_reason: Optional[str] = Field(default=None, max_length=30)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    user: Optional["User"] = Relationship(back_populates="login_logs")
