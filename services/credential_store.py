# ================================================================
# services/credential_store.py: User persistence with field encryption
# ================================================================
import logging
from typing import Any, Dict, Optional

from sqlalchemy import func, or_
from sqlmodel import Session, select

from core.crypto import FieldCipher, FieldDecryptionError
from core.security import hash_password
from models.models import Plan, User, utcnow

logger = logging.getLogger(__name__)

# Columns that hold ciphertext; everything outside the store sees plaintext
ENCRYPTED_FIELDS = ("first_name", "last_name", "phone")


class CredentialStore:
    """
    Reads and writes User rows.

    Personal fields are encrypted on the way in and decrypted on the way
    out here, and nowhere else.
    """

    def __init__(self, session: Session, cipher: FieldCipher):
        self.session = session
        self.cipher = cipher

    # ----------------------------------------------------------
    # Lookups
    # ----------------------------------------------------------
    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def find_by_identifier(self, identifier: str) -> Optional[User]:
        """Match username or email, case-insensitively."""
        ident = (identifier or "").strip().lower()
        if not ident:
            return None
        return self.session.exec(
            select(User).where(
                or_(func.lower(User.username) == ident, func.lower(User.email) == ident)
            )
        ).first()

    def exists_with_username_or_email(self, username: str, email: str) -> bool:
        existing = self.session.exec(
            select(User.id).where(or_(User.username == username, User.email == email))
        ).first()
        return existing is not None

    def count_by_plan_and_role(self, plan_id: int, role: str) -> int:
        return self.session.exec(
            select(func.count(User.id)).where(User.plan_id == plan_id, User.role == role)
        ).one()

    # ----------------------------------------------------------
    # Writes
    # ----------------------------------------------------------
    def _encode(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        encoded = dict(fields)
        for name in ENCRYPTED_FIELDS:
            if name in encoded:
                encoded[name] = self.cipher.encrypt(encoded[name])
        if "password" in encoded:
            encoded["password_hash"] = hash_password(encoded.pop("password"))
        return encoded

    def create_user(self, **fields) -> User:
        """Create a user; commits. IntegrityError propagates to the caller."""
        user = User(**self._encode(fields))
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def update_user(self, user: User, **fields) -> User:
        for name, value in self._encode(fields).items():
            setattr(user, name, value)
        user.updated_at = utcnow()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    # ----------------------------------------------------------
    # Read model
    # ----------------------------------------------------------
    def decrypt_field(self, user: User, name: str) -> Optional[str]:
        try:
            return self.cipher.decrypt(getattr(user, name))
        except FieldDecryptionError:
            logger.warning(f"⚠️ Could not decrypt {name} for user {user.id}")
            return None

    def serialize_user(self, user: User, plan: Optional[Plan] = None) -> Dict[str, Any]:
        """Convert a User row into a JSON-ready dict with plaintext personal fields."""
        data = {
            "id": user.id,
            "firstName": self.decrypt_field(user, "first_name"),
            "lastName": self.decrypt_field(user, "last_name"),
            "phone": self.decrypt_field(user, "phone"),
            "username": user.username,
            "email": user.email,
            "role": user.role,
            "isActive": user.is_active,
            "loginCount": user.login_count,
            "planId": user.plan_id,
        }
        if plan is not None:
            data["plan"] = {
                "name": plan.name,
                "endDate": plan.end_date,
                "status": plan.status,
            }
        return data
