from fastapi import APIRouter, Depends, Request, status
import logging

from core.dependencies import get_auth_service, get_current_session
from schemas.user_schema import (
    LoginRequest, PasswordStrengthRequest, ProfileRead, RefreshRequest,
    RegisterRequest, SecretKeyRequest,
)
from services.auth_service import AuthService
from services.request_gate import AuthContext

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])


def client_info(request: Request) -> tuple:
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


# ==========================================================
# ✅ Register: joins a plan by secret key or gets a fresh one
# ==========================================================
@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    """Create a user, either on an existing plan (secret key) or on a new single-seat plan."""
    logger.info(f"📝 Registration attempt for {payload.username!r}")
    return auth.register(payload.model_dump())


# ==========================================================
# ✅ Login
# ==========================================================
@router.post("/login")
def login(credentials: LoginRequest, request: Request, auth: AuthService = Depends(get_auth_service)):
    ip, user_agent = client_info(request)
    return auth.login(
        credentials.identifier,
        credentials.password,
        remember_me=credentials.remember_me,
        ip_address=ip,
        user_agent=user_agent,
    )


# ==========================================================
# ✅ Refresh: rotate the token pair of a live session
# ==========================================================
@router.post("/refresh")
def refresh(payload: RefreshRequest, request: Request, auth: AuthService = Depends(get_auth_service)):
    ip, user_agent = client_info(request)
    return auth.refresh(payload.refresh_token, ip_address=ip, user_agent=user_agent)


# ==========================================================
# ✅ Logout
# ==========================================================
@router.post("/logout")
def logout(
    current: AuthContext = Depends(get_current_session),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.logout(current.id, current.token)


# ==========================================================
# ✅ Profile of the authenticated user
# ==========================================================
@router.get("/profile", response_model=ProfileRead)
def get_profile(
    current: AuthContext = Depends(get_current_session),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.profile(current.id)


# ==========================================================
# ✅ Public helpers for the signup form
# ==========================================================
@router.post("/validate-secret-key")
def validate_secret_key(payload: SecretKeyRequest, auth: AuthService = Depends(get_auth_service)):
    return auth.validate_secret_key(payload.secret_key)


@router.post("/check-password-strength")
def check_password_strength(payload: PasswordStrengthRequest):
    return AuthService.check_password_strength(payload.password)
