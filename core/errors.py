# core/errors.py
from typing import Dict, List, Optional

from fastapi import HTTPException, status


# ========================================
# ⚠️ Base error
# ========================================
class AppError(HTTPException):
    """
    HTTPException carrying a machine-readable code and a short action hint.

    Every rejection the auth subsystem produces is one of these, so the
    exception handler in main.py can render them uniformly as
    ``{"error": ..., "code": ..., "action": ...}``.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"
    message: str = "Request could not be processed."
    action: Optional[str] = None

    def __init__(
        self,
        message: Optional[str] = None,
        action: Optional[str] = None,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.message
        self.action = action if action is not None else self.action
        super().__init__(
            status_code=status_code or self.status_code,
            detail=self.message,
            headers=headers,
        )

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.action:
            body["action"] = self.action
        return body


# ========================================
# 📝 Validation
# ========================================
class ValidationFailed(AppError):
    code = "validation_error"
    message = "Some fields are invalid."

    def __init__(self, errors: List[str], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message=message)

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["errors"] = self.errors
        return body


class ConflictError(AppError):
    code = "already_exists"
    message = "A user with that email or username already exists."
    action = "Log in instead, or pick a different username."


# ========================================
# 🔑 Authentication (401)
# ========================================
class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "authentication_error"
    message = "Authentication failed."
    action = "Please log in again."

    def __init__(self, message: Optional[str] = None, action: Optional[str] = None,
                 status_code: Optional[int] = None):
        headers = None
        if (status_code or self.status_code) == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        super().__init__(message=message, action=action, status_code=status_code, headers=headers)


class MissingToken(AuthenticationError):
    code = "missing_token"
    message = "Access token required."
    action = "Send a valid token in the header Authorization: Bearer <token>."


class InvalidToken(AuthenticationError):
    code = "invalid_token"
    message = "Invalid token."


class ExpiredToken(InvalidToken):
    """Same code as InvalidToken; only the message tells the two apart."""
    message = "Token has expired."


class SessionNotActive(AuthenticationError):
    code = "session_not_active"
    message = "Session is invalid or has expired."


class BadCredentials(AuthenticationError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "bad_credentials"
    message = "Incorrect password."
    action = "Check your password and try again."


class RefreshTokenInvalid(AuthenticationError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "refresh_token_invalid"
    message = "Refresh token is invalid, expired or revoked."


# ========================================
# 🚫 Authorization (403)
# ========================================
class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "authorization_error"
    message = "You are not allowed to do this."


class UserInactive(AuthorizationError):
    code = "user_inactive"
    message = "Account is inactive."
    action = "Contact the administrator to reactivate your account."


class PlanInactive(AuthorizationError):
    code = "plan_inactive"
    message = "Your plan is inactive."
    action = "Contact the administrator to renew your plan."


class PlanExpired(AuthorizationError):
    code = "plan_expired"
    message = "Your plan has expired."
    action = "Contact the administrator to renew your plan."


class PlanNotFound(AuthorizationError):
    code = "plan_not_found"
    message = "No plan is associated with this user."
    action = "Contact the system administrator."


class PlanCapacityExceeded(AuthorizationError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "plan_capacity_exceeded"
    message = "This plan has reached its maximum number of accounts."
    action = "Ask the plan owner for more seats."


class InvalidSecretKey(AppError):
    code = "invalid_secret_key"
    message = "Invalid secret key."
    action = "Check the key with your plan owner."


class InsufficientRole(AuthorizationError):
    code = "insufficient_role"
    message = "Your role does not allow this action."


# ========================================
# 🔍 Not found (404)
# ========================================
class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Resource not found."


class UserNotFound(NotFoundError):
    code = "user_not_found"
    message = "User not found."
    action = "Contact the system administrator."
