# ================================================================
# services/session_ledger.py: Durable record of live bearer tokens
# ================================================================
import logging
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from models.models import ClosedReason, LoginLog, utcnow

logger = logging.getLogger(__name__)


class SessionLedger:
    """
    Append-only log of logins; the authority on whether a token is live.

    A token is usable only while its entry is active, regardless of the
    token's own expiry, which is what makes logout and revocation immediate.
    """

    def __init__(self, session: Session):
        self.session = session

    # ----------------------------------------------------------
    # Writes
    # ----------------------------------------------------------
    def record_login(
        self,
        user_id: int,
        token: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        refresh_token: Optional[str] = None,
    ) -> Optional[LoginLog]:
        """Append an active entry. Failures are logged and return None."""
        now = utcnow()
        entry = LoginLog(
            user_id=user_id,
            session_token=token,
            refresh_token=refresh_token,
            is_active_session=True,
            login_time=now,
            ip_address=(ip_address or "unknown")[:45],
            user_agent=(user_agent or "unknown")[:500],
        )
        try:
            self.session.add(entry)
            self.session.commit()
            self.session.refresh(entry)
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"❌ Could not record login for user {user_id} (non-critical)")
            return None
        logger.info(f"✅ Session {entry.id} opened for user {user_id}")
        return entry

    def close(self, entry_or_token: Union[LoginLog, int, str], reason: Union[ClosedReason, str],
              user_id: Optional[int] = None) -> int:
        """
        Deactivate matching active entries; returns how many were closed.

        Accepts an entry, an entry id, or a token string (optionally scoped
        to ``user_id``). Entries that are already closed are left untouched,
        so repeating a close is a no-op.
        """
        statement = select(LoginLog).where(LoginLog.is_active_session == True)  # noqa: E712
        if isinstance(entry_or_token, LoginLog):
            statement = statement.where(LoginLog.id == entry_or_token.id)
        elif isinstance(entry_or_token, int):
            statement = statement.where(LoginLog.id == entry_or_token)
        else:
            statement = statement.where(LoginLog.session_token == entry_or_token)
            if user_id is not None:
                statement = statement.where(LoginLog.user_id == user_id)
        return self._close_matching(statement, reason)

    def close_all_for_user(self, user_id: int, reason: Union[ClosedReason, str]) -> int:
        statement = select(LoginLog).where(
            LoginLog.user_id == user_id,
            LoginLog.is_active_session == True,  # noqa: E712
        )
        return self._close_matching(statement, reason)

    def _close_matching(self, statement, reason: Union[ClosedReason, str]) -> int:
        reason_value = reason.value if isinstance(reason, ClosedReason) else str(reason)
        entries = self.session.exec(statement).all()
        if not entries:
            return 0

        now = utcnow()
        for entry in entries:
            entry.is_active_session = False
            entry.logout_time = now
            entry.closed_reason = reason_value
            entry.updated_at = now
            self.session.add(entry)
        self.session.commit()
        logger.info(f"🔒 Closed {len(entries)} session(s): {reason_value}")
        return len(entries)

    def touch(self, entry: LoginLog) -> None:
        """Best-effort last-activity stamp."""
        try:
            entry.last_activity_at = utcnow()
            self.session.add(entry)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"⚠️ Could not update last activity for session {entry.id} (non-critical)")

    # ----------------------------------------------------------
    # Reads
    # ----------------------------------------------------------
    def find_active(self, user_id: int, token: str) -> Optional[LoginLog]:
        return self.session.exec(
            select(LoginLog).where(
                LoginLog.user_id == user_id,
                LoginLog.session_token == token,
                LoginLog.is_active_session == True,  # noqa: E712
            )
        ).first()

    def find_active_by_refresh(self, user_id: int, refresh_token: str) -> Optional[LoginLog]:
        return self.session.exec(
            select(LoginLog).where(
                LoginLog.user_id == user_id,
                LoginLog.refresh_token == refresh_token,
                LoginLog.is_active_session == True,  # noqa: E712
            )
        ).first()

    def last_login_time(self, user_id: int) -> Optional[datetime]:
        return self.session.exec(
            select(LoginLog.login_time)
            .where(LoginLog.user_id == user_id)
            .order_by(LoginLog.login_time.desc())
        ).first()

    def list_entries(self, user_id: Optional[int] = None, active_only: bool = False) -> List[LoginLog]:
        statement = select(LoginLog)
        if user_id is not None:
            statement = statement.where(LoginLog.user_id == user_id)
        if active_only:
            statement = statement.where(LoginLog.is_active_session == True)  # noqa: E712
        return list(self.session.exec(statement.order_by(LoginLog.login_time.desc(), LoginLog.id.desc())).all())
