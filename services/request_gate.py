# ================================================================
# services/request_gate.py: Per-request session and entitlement check
# ================================================================
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from core.config import settings
from core.crypto import get_field_cipher
from core.errors import (
    ExpiredToken, InvalidToken, MissingToken, PlanExpired, PlanInactive,
    PlanNotFound, SessionNotActive, UserInactive, UserNotFound,
)
from core.security import TokenError, TokenExpired, TokenService
from models.models import ClosedReason, LoginLog, User
from services.credential_store import CredentialStore
from services.plan_registry import PlanRegistry
from services.session_ledger import SessionLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """What a protected route learns about its caller."""
    id: int
    username: str
    role: str
    session_id: int
    token: str


class RequestGate:
    """
    Re-derives authorization from live state on every protected request.

    Order matters and each step short-circuits: token signature/expiry,
    ledger entry, user row, user status, plan presence, plan status, plan
    end date. Every rejection after the ledger lookup also closes the
    session so the same token cannot be replayed.
    """

    def __init__(self, session: Session, tokens: TokenService, self_heal: Optional[bool] = None):
        self.session = session
        self.tokens = tokens
        self.self_heal = settings.PLAN_SELF_HEAL_ON_REQUEST if self_heal is None else self_heal
        self.ledger = SessionLedger(session)
        self.registry = PlanRegistry(session)
        self.store = CredentialStore(session, get_field_cipher())

    def authenticate(self, token: Optional[str]) -> AuthContext:
        if not token:
            raise MissingToken()

        try:
            claims = self.tokens.verify(token)
        except TokenError as e:
            self._close_quietly(token, ClosedReason(e.reason))
            logger.warning(f"❌ Rejected token: {e}")
            raise ExpiredToken() if isinstance(e, TokenExpired) else InvalidToken()

        user_id = claims["user_id"]
        entry = self.ledger.find_active(user_id, token)
        if entry is None:
            logger.warning(f"❌ No active session for user {user_id}")
            raise SessionNotActive()

        user = self.enforce_entitlement(user_id, entry)

        self.ledger.touch(entry)
        return AuthContext(
            id=user.id,
            username=user.username,
            role=user.role,
            session_id=entry.id,
            token=token,
        )

    def enforce_entitlement(self, user_id: int, entry: LoginLog) -> User:
        """Check user and plan state for an open session; close it on failure."""
        user = self.store.find_by_id(user_id)
        if user is None:
            self.ledger.close(entry, ClosedReason.USER_NOT_FOUND)
            raise UserNotFound(status_code=403)

        if not user.is_active:
            self.ledger.close(entry, ClosedReason.USER_INACTIVE)
            raise UserInactive()

        plan = self.registry.find_by_id(user.plan_id)
        if plan is None:
            if not self.self_heal:
                self.ledger.close(entry, ClosedReason.PLAN_NOT_FOUND)
                raise PlanNotFound()
            plan = self.registry.heal_user_plan(user)

        try:
            self.registry.check_validity(plan)
        except PlanInactive:
            self.ledger.close(entry, ClosedReason.PLAN_INACTIVE)
            raise
        except PlanExpired:
            self.ledger.close(entry, ClosedReason.PLAN_EXPIRED)
            raise

        return user

    def _close_quietly(self, token: str, reason: ClosedReason) -> None:
        try:
            self.ledger.close(token, reason)
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("⚠️ Could not close session for rejected token (non-critical)")
