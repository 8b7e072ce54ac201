from .session_schema import LoginLogRead, RevokeSessionsResponse
from .user_schema import (
    UserRole,
    RegisterRequest, LoginRequest, SecretKeyRequest, PasswordStrengthRequest, RefreshRequest,
    PlanSummary, ProfileUser, ProfileRead,
)

__all__ = [
    # Session ledger
    "LoginLogRead", "RevokeSessionsResponse",

    # User / auth
    "UserRole",
    "RegisterRequest", "LoginRequest", "SecretKeyRequest", "PasswordStrengthRequest", "RefreshRequest",
    "PlanSummary", "ProfileUser", "ProfileRead",
]
