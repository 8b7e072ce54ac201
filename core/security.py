# core/security.py
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import uuid

from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from core.config import settings


# ========================================
# 🔑 JWT / APP CONFIG
# ========================================
ALGORITHM = settings.ALGORITHM or "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
REMEMBER_ME_EXPIRE_DAYS = settings.REMEMBER_ME_EXPIRE_DAYS
REFRESH_TOKEN_EXPIRE_DAYS = settings.REFRESH_TOKEN_EXPIRE_DAYS

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# auto_error=False: the request gate raises its own MissingToken error
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


# ========================================
# 🔐 Password Hashing (Argon2)
# ========================================
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash password using Argon2."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password using Argon2."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognised or corrupted hash
        return False


# ========================================
# 🎟️ Token Service
# ========================================
class TokenError(Exception):
    reason = "token_invalid"


class TokenExpired(TokenError):
    reason = "token_expired"


class TokenInvalid(TokenError):
    reason = "token_invalid"


class TokenService:
    """
    Issues and verifies signed bearer tokens.

    Tokens carry identity only (user id, role, username). Entitlement is
    never embedded: the request gate re-reads it from the database on
    every call.
    """

    def __init__(
        self,
        secret_key: str,
        refresh_secret: str,
        algorithm: str = ALGORITHM,
        access_expire: timedelta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
        remember_me_expire: timedelta = timedelta(days=REMEMBER_ME_EXPIRE_DAYS),
        refresh_expire: timedelta = timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
    ):
        self.secret_key = secret_key
        self.refresh_secret = refresh_secret
        self.algorithm = algorithm
        self.access_expire = access_expire
        self.remember_me_expire = remember_me_expire
        self.refresh_expire = refresh_expire

    def _encode(self, claims: Dict[str, Any], key: str, expires_delta: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = claims.copy()
        to_encode.update({
            "iat": now,
            "exp": now + expires_delta,
            # Unique per issue so two logins in the same second never collide in the ledger
            "jti": uuid.uuid4().hex,
        })
        return jwt.encode(to_encode, key, algorithm=self.algorithm)

    def _decode(self, token: str, key: str, expected_type: str) -> Dict[str, Any]:
        if not token:
            raise TokenInvalid("Empty token")
        try:
            payload = jwt.decode(token, key, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpired("Token has expired") from e
        except JWTError as e:
            raise TokenInvalid("Token is malformed or its signature is invalid") from e

        if payload.get("type") != expected_type:
            raise TokenInvalid(f"Expected a {expected_type} token")
        if not payload.get("user_id"):
            raise TokenInvalid("Token has no user_id claim")
        return payload

    def issue(self, user, remember_me: bool = False, expires_delta: Optional[timedelta] = None) -> str:
        if user is None or not getattr(user, "id", None):
            raise ValueError("Cannot issue a token for a user without an id")
        claims = {
            "user_id": user.id,
            "role": user.role or "user",
            "username": user.username or "",
            "type": ACCESS_TOKEN_TYPE,
        }
        if expires_delta is None:
            expires_delta = self.remember_me_expire if remember_me else self.access_expire
        return self._encode(claims, self.secret_key, expires_delta)

    def verify(self, token: str) -> Dict[str, Any]:
        """Return decoded claims or raise TokenExpired / TokenInvalid."""
        return self._decode(token, self.secret_key, ACCESS_TOKEN_TYPE)

    def issue_refresh(self, user, expires_delta: Optional[timedelta] = None) -> str:
        if user is None or not getattr(user, "id", None):
            raise ValueError("Cannot issue a token for a user without an id")
        claims = {"user_id": user.id, "type": REFRESH_TOKEN_TYPE}
        return self._encode(claims, self.refresh_secret, expires_delta or self.refresh_expire)

    def verify_refresh(self, token: str) -> Dict[str, Any]:
        return self._decode(token, self.refresh_secret, REFRESH_TOKEN_TYPE)


token_service = TokenService(
    secret_key=settings.SECRET_KEY,
    refresh_secret=settings.refresh_secret,
)


def get_token_service() -> TokenService:
    return token_service
