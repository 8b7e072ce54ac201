# routes/login_logs.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session
import logging

from core.database import get_session
from core.dependencies import get_auth_service, get_current_admin
from core.errors import NotFoundError, ValidationFailed
from models.models import utcnow
from schemas.session_schema import LoginLogRead, RevokeSessionsResponse
from services.auth_service import AuthService
from services.request_gate import AuthContext
from services.session_ledger import SessionLedger

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Login Logs"])


def _check_user_id(user_id: int) -> None:
    if user_id <= 0:
        raise ValidationFailed(["Invalid user id."])


# ----------------------------------------------------------------------
# ✅ All sessions (Admin only)
# ----------------------------------------------------------------------
@router.get("/", response_model=List[LoginLogRead])
def get_all_logs(
    active: Optional[bool] = Query(None, description="Only active sessions"),
    current: AuthContext = Depends(get_current_admin),
    session: Session = Depends(get_session),
):
    return SessionLedger(session).list_entries(active_only=bool(active))


# ----------------------------------------------------------------------
# ✅ Sessions of one user, newest first (Admin only)
# ----------------------------------------------------------------------
@router.get("/{user_id}", response_model=List[LoginLogRead])
def get_logs_by_user(
    user_id: int,
    current: AuthContext = Depends(get_current_admin),
    session: Session = Depends(get_session),
):
    _check_user_id(user_id)
    return SessionLedger(session).list_entries(user_id=user_id)


# ----------------------------------------------------------------------
# ✅ Force logout every active session of a user (Admin only)
# ----------------------------------------------------------------------
@router.post("/logout/{user_id}", response_model=RevokeSessionsResponse)
def force_logout(
    user_id: int,
    current: AuthContext = Depends(get_current_admin),
    auth: AuthService = Depends(get_auth_service),
):
    _check_user_id(user_id)
    closed = auth.revoke_user_sessions(user_id)
    if closed == 0:
        raise NotFoundError(message="No active session registered for this user.")

    logger.info(f"🔒 Admin {current.id} revoked {closed} session(s) of user {user_id}")
    return {
        "message": "Sessions closed successfully.",
        "closed": closed,
        "logoutTime": utcnow(),
    }
