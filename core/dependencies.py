# core/dependencies.py
from typing import Optional

from fastapi import Depends, Request
from sqlmodel import Session

from core.database import get_session
from core.errors import InsufficientRole
from core.security import TokenService, get_token_service, oauth2_scheme
from models.models import UserRole
from services.auth_service import AuthService
from services.request_gate import AuthContext, RequestGate


# ========================================
# 🧩 Service wiring
# ========================================
def get_auth_service(
    session: Session = Depends(get_session),
    tokens: TokenService = Depends(get_token_service),
) -> AuthService:
    return AuthService(session, tokens)


# ========================================
# 🚪 Request gate
# ========================================
def get_current_session(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
    tokens: TokenService = Depends(get_token_service),
) -> AuthContext:
    """Authenticate the bearer token against live session, user and plan state."""
    auth = RequestGate(session, tokens).authenticate(token)
    request.state.auth = auth
    return auth


# ========================================
# 👤 Role checks
# ========================================
def get_current_admin(current: AuthContext = Depends(get_current_session)) -> AuthContext:
    """Require Admin."""
    if current.role != UserRole.ADMIN.value:
        raise InsufficientRole(message="Admin privileges required")
    return current
