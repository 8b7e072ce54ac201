# ================================================================
# services/auth_service.py: Login, registration and session lifecycle
# ================================================================
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from core.crypto import FieldCipher, get_field_cipher
from core.errors import (
    BadCredentials, ConflictError, InvalidSecretKey, PlanCapacityExceeded,
    PlanExpired, PlanInactive, RefreshTokenInvalid, UserInactive, UserNotFound,
    ValidationFailed,
)
from core.security import TokenError, TokenService, verify_password
from core.validators import (
    get_password_strength, sanitize_input, validate_and_sanitize_register_data,
    validate_login_fields, validate_secret_key_input,
)
from models.models import ClosedReason, Plan, User, UserRole, utcnow
from services.credential_store import CredentialStore
from services.plan_registry import PlanRegistry
from services.request_gate import RequestGate
from services.session_ledger import SessionLedger

logger = logging.getLogger(__name__)

JOINABLE_ROLES = (UserRole.USER.value, UserRole.SUPERVISOR.value)


class AuthService:
    """
    Orchestrates the authentication flow.

    A login walks: validate credentials -> check plan -> issue token ->
    record session. Only the last step is best-effort; every earlier
    failure aborts with a specific error.
    """

    def __init__(self, session: Session, tokens: TokenService, cipher: Optional[FieldCipher] = None):
        self.session = session
        self.tokens = tokens
        self.store = CredentialStore(session, cipher or get_field_cipher())
        self.registry = PlanRegistry(session)
        self.ledger = SessionLedger(session)

    # ==========================================================
    # 🔑 Secret key / plan occupancy
    # ==========================================================
    def _occupancy(self, plan: Plan) -> Dict[str, int]:
        return {
            UserRole.USER.value: self.store.count_by_plan_and_role(plan.id, UserRole.USER.value),
            UserRole.SUPERVISOR.value: self.store.count_by_plan_and_role(plan.id, UserRole.SUPERVISOR.value),
        }

    def _joinable_plan(self, secret_key: str) -> Plan:
        plan = self.registry.find_by_token(secret_key)
        if plan is None:
            raise InvalidSecretKey()
        try:
            self.registry.check_validity(plan)
        except PlanInactive:
            raise PlanInactive(message="The plan linked to this key is not active.", status_code=400)
        except PlanExpired:
            raise PlanExpired(message="The plan linked to this key has expired.", status_code=400)
        return plan

    def validate_secret_key(self, secret_key: Optional[str]) -> Dict[str, Any]:
        key = sanitize_input(secret_key)
        if not key:
            raise InvalidSecretKey(message="Secret key is required.")

        plan = self._joinable_plan(key)
        counts = self._occupancy(plan)

        roles = []
        if counts[UserRole.USER.value] < plan.max_users:
            roles.append(UserRole.USER.value)
        if plan.max_supervisors > 0 and counts[UserRole.SUPERVISOR.value] < plan.max_supervisors:
            roles.append(UserRole.SUPERVISOR.value)

        if not roles:
            raise PlanCapacityExceeded(message="This plan has reached the maximum number of allowed users.")

        return {
            "message": "Secret key is valid",
            "roles": roles,
            "planName": plan.name,
            "availableSlots": {
                "users": max(plan.max_users - counts[UserRole.USER.value], 0),
                "supervisors": max(plan.max_supervisors - counts[UserRole.SUPERVISOR.value], 0),
            },
        }

    def _check_capacity(self, plan: Plan, role: str) -> None:
        """Read-then-write seat check; concurrent registrations can race past it."""
        if role == UserRole.USER.value:
            used = self.store.count_by_plan_and_role(plan.id, role)
            if used >= plan.max_users:
                raise PlanCapacityExceeded(
                    message=f"This plan has already reached its maximum number of users ({plan.max_users})."
                )
        elif role == UserRole.SUPERVISOR.value:
            if plan.max_supervisors == 0:
                raise PlanCapacityExceeded(message="This plan does not allow supervisors.")
            used = self.store.count_by_plan_and_role(plan.id, role)
            if used >= plan.max_supervisors:
                raise PlanCapacityExceeded(
                    message=f"This plan has already reached its maximum number of supervisors ({plan.max_supervisors})."
                )

    # ==========================================================
    # 📝 Registration
    # ==========================================================
    def register(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        validation = validate_and_sanitize_register_data(payload)
        if not validation["is_valid"]:
            raise ValidationFailed(validation["errors"])
        data = validation["data"]

        if self.store.exists_with_username_or_email(data["username"], data["email"]):
            raise ConflictError()

        role = UserRole.USER.value
        if data["secret_key"]:
            key_errors = validate_secret_key_input(data["secret_key"])
            if key_errors:
                raise ValidationFailed(key_errors)

            plan = self._joinable_plan(data["secret_key"])
            if data["role"] not in JOINABLE_ROLES:
                raise ValidationFailed(["Invalid role for the selected plan."])
            self._check_capacity(plan, data["role"])
            role = data["role"]
        else:
            plan = self.registry.provision_single_seat(
                name=f"Basic plan for {data['username']}",
                description="Basic plan generated automatically",
            )

        try:
            user = self.store.create_user(
                first_name=data["first_name"],
                last_name=data["last_name"],
                username=data["username"],
                email=data["email"],
                phone=data["phone"],
                password=data["password"],
                role=role,
                is_active=True,
                created_by="system",
                login_count=0,
                plan_id=plan.id,
            )
        except IntegrityError:
            self.session.rollback()
            if not data["secret_key"]:
                # The single-seat plan was provisioned for this user only
                self.session.delete(plan)
                self.session.commit()
            raise ConflictError()

        logger.info(f"✅ Registered user {user.id} ({user.role}) on plan {plan.id}")
        return {
            "message": "User registered successfully",
            "user": {
                "id": user.id,
                "username": user.username,
                "email": user.email,
                "role": user.role,
            },
            "planId": plan.id,
        }

    # ==========================================================
    # 🔓 Login
    # ==========================================================
    def _ensure_login_plan(self, user: User) -> Plan:
        plan = self.registry.find_by_id(user.plan_id)
        if plan is None:
            # A dangling plan reference must never lock a user out
            return self.registry.heal_user_plan(user)
        self.registry.check_validity(plan)
        return plan

    def login(
        self,
        identifier: Optional[str],
        password: Optional[str],
        remember_me: bool = False,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        errors = validate_login_fields(identifier, password)
        if errors:
            raise ValidationFailed(errors)

        # ValidatingCredentials
        user = self.store.find_by_identifier(sanitize_input(identifier).lower())
        if user is None:
            raise UserNotFound(status_code=400)
        if not user.is_active:
            raise UserInactive()
        if not verify_password(password, user.password_hash):
            logger.warning(f"❌ Wrong password for user {user.id}")
            raise BadCredentials()

        # CheckingPlan
        self._ensure_login_plan(user)

        # IssuingToken
        token = self.tokens.issue(user, remember_me=remember_me)
        refresh_token = self.tokens.issue_refresh(user)

        # RecordingSession
        self.ledger.record_login(user.id, token, ip_address, user_agent, refresh_token=refresh_token)
        self._bump_login_stats(user)

        return {
            "message": "Login successful",
            "token": token,
            "refreshToken": refresh_token,
            "user": {
                "id": user.id,
                "username": user.username,
                "role": user.role,
                "email": user.email,
                "firstName": self.store.decrypt_field(user, "first_name"),
                "lastName": self.store.decrypt_field(user, "last_name"),
            },
        }

    def _bump_login_stats(self, user: User) -> None:
        try:
            user.login_count = (user.login_count or 0) + 1
            user.last_login_at = utcnow()
            self.session.add(user)
            self.session.commit()
            self.session.refresh(user)
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"⚠️ Could not update login stats for user {user.id} (non-critical)")

    # ==========================================================
    # 🔄 Refresh
    # ==========================================================
    def refresh(
        self,
        refresh_token: Optional[str],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Trade a refresh token for a new token pair.

        The old ledger entry is closed as ``session_replaced`` and a new
        one is opened, so the previous access token stops working at once.
        """
        if not refresh_token:
            raise RefreshTokenInvalid(message="Refresh token required.", status_code=401)
        try:
            claims = self.tokens.verify_refresh(refresh_token)
        except TokenError:
            raise RefreshTokenInvalid()

        entry = self.ledger.find_active_by_refresh(claims["user_id"], refresh_token)
        if entry is None:
            raise RefreshTokenInvalid()

        gate = RequestGate(self.session, self.tokens)
        user = gate.enforce_entitlement(claims["user_id"], entry)

        token = self.tokens.issue(user)
        new_refresh = self.tokens.issue_refresh(user)
        self.ledger.close(entry, ClosedReason.SESSION_REPLACED)
        self.ledger.record_login(
            user.id,
            token,
            ip_address or entry.ip_address,
            user_agent or entry.user_agent,
            refresh_token=new_refresh,
        )
        return {"message": "Token refreshed", "token": token, "refreshToken": new_refresh}

    # ==========================================================
    # 🔒 Logout / revocation
    # ==========================================================
    def logout(self, user_id: int, token: str) -> Dict[str, str]:
        closed = self.ledger.close(token, ClosedReason.LOGOUT, user_id=user_id)
        if closed == 0:
            logger.info(f"⚠️ No active session to close for user {user_id}, continuing")
        return {"message": "Logged out successfully"}

    def revoke_user_sessions(self, user_id: int) -> int:
        return self.ledger.close_all_for_user(user_id, ClosedReason.REVOKED)

    # ==========================================================
    # 👤 Profile
    # ==========================================================
    def profile(self, user_id: int) -> Dict[str, Any]:
        user = self.store.find_by_id(user_id)
        if user is None:
            raise UserNotFound()

        plan = self.registry.find_by_id(user.plan_id)
        data = self.store.serialize_user(user, plan=plan)
        if plan is None:
            data["plan"] = None
        data["lastLoginAt"] = self.ledger.last_login_time(user.id)
        return {"user": data}

    # ==========================================================
    # 💪 Password strength
    # ==========================================================
    @staticmethod
    def check_password_strength(password: Optional[str]) -> Dict[str, Any]:
        if not password:
            raise ValidationFailed(["Password is required."])
        return get_password_strength(password)
