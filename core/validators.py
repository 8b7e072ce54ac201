# core/validators.py
import re
from typing import Any, Dict, List, Optional

from email_validator import EmailNotValidError, validate_email

# At least 6 chars with one lowercase, one uppercase and one digit
STRONG_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{6,}$")
PHONE_RE = re.compile(r"^\+?[\d\s\-()]{8,}$")
USERNAME_RE = re.compile(r"^[a-zA-Z0-9._]{3,}$")
NAME_RE = re.compile(r"^[a-zA-ZÀ-ÿñÑ\s]{2,}$")

MAX_INPUT_LENGTH = 255
# Column widths of user.username and user.email
MAX_USERNAME_LENGTH = 50
MAX_EMAIL_LENGTH = 100
MIN_SECRET_KEY_LENGTH = 8


def sanitize_input(value: Any) -> str:
    """Trim, strip angle brackets and cap length. Non-strings become ''."""
    if not value or not isinstance(value, str):
        return ""
    return re.sub(r"[<>]", "", value.strip())[:MAX_INPUT_LENGTH]


def is_valid_email(email: Optional[str]) -> bool:
    """Same rules as pydantic's EmailStr, which the profile response uses."""
    if not email:
        return False
    try:
        validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_strong_password(password: Optional[str]) -> bool:
    return bool(password) and bool(STRONG_PASSWORD_RE.match(password))


def is_valid_phone(phone: Optional[str]) -> bool:
    return bool(phone) and bool(PHONE_RE.match(phone.strip()))


def is_valid_username(username: Optional[str]) -> bool:
    return bool(username) and bool(USERNAME_RE.match(username.strip()))


def is_valid_name(name: Optional[str]) -> bool:
    return bool(name) and bool(NAME_RE.match(name.strip()))


def validate_register_fields(data: Dict[str, Any]) -> List[str]:
    errors = []

    for field, label in (("first_name", "First name"), ("last_name", "Last name")):
        value = data.get(field)
        if not value:
            errors.append(f"{label} is required.")
        elif not is_valid_name(value):
            errors.append(f"{label} must be at least 2 characters and contain only letters.")

    if not data.get("username"):
        errors.append("Username is required.")
    elif len(data["username"]) > MAX_USERNAME_LENGTH:
        errors.append(f"Username must be at most {MAX_USERNAME_LENGTH} characters.")
    elif not is_valid_username(data["username"]):
        errors.append(
            "Username must be at least 3 characters and contain only letters, numbers, dots and underscores."
        )

    if not data.get("email"):
        errors.append("Email is required.")
    elif len(data["email"]) > MAX_EMAIL_LENGTH:
        errors.append(f"Email must be at most {MAX_EMAIL_LENGTH} characters.")
    elif not is_valid_email(data["email"]):
        errors.append("Email format is invalid.")

    if not data.get("phone"):
        errors.append("Phone is required.")
    elif not is_valid_phone(data["phone"]):
        errors.append("Phone format is invalid.")

    if not data.get("password"):
        errors.append("Password is required.")
    elif not is_strong_password(data["password"]):
        errors.append("Password must be at least 6 characters with one uppercase letter, one lowercase letter and one number.")

    return errors


def validate_login_fields(identifier: Any, password: Any) -> List[str]:
    errors = []
    if not identifier or not str(identifier).strip():
        errors.append("Username or email is required.")
    if not password:
        errors.append("Password is required.")
    return errors


def validate_secret_key_input(secret_key: Any) -> List[str]:
    if not secret_key or not isinstance(secret_key, str) or not secret_key.strip():
        return ["Secret key is required."]
    if len(secret_key.strip()) < MIN_SECRET_KEY_LENGTH:
        return [f"Secret key must be at least {MIN_SECRET_KEY_LENGTH} characters."]
    return []


def validate_and_sanitize_register_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Sanitize registration input and validate it.

    Returns ``{"data": ..., "errors": [...], "is_valid": bool}``. Username
    and email are lower-cased; the password is passed through untouched.
    """
    sanitized = {
        "first_name": sanitize_input(data.get("first_name")),
        "last_name": sanitize_input(data.get("last_name")),
        "username": sanitize_input(data.get("username")).lower(),
        "email": sanitize_input(data.get("email")).lower(),
        "phone": sanitize_input(data.get("phone")),
        "password": data.get("password"),
        "secret_key": sanitize_input(data.get("secret_key")),
        "role": sanitize_input(data.get("role")).lower() or "user",
    }
    errors = validate_register_fields(sanitized)
    return {"data": sanitized, "errors": errors, "is_valid": not errors}


def get_password_strength(password: Optional[str]) -> Dict[str, Any]:
    if not password:
        return {"strength": "none", "score": 0, "suggestions": ["Enter a password"]}

    checks = [
        (len(password) >= 8, "Use at least 8 characters"),
        (re.search(r"[a-z]", password), "Include lowercase letters"),
        (re.search(r"[A-Z]", password), "Include uppercase letters"),
        (re.search(r"\d", password), "Include numbers"),
        (re.search(r"[^a-zA-Z0-9]", password), "Include special characters (!@#$%^&*)"),
    ]
    score = sum(1 for passed, _ in checks if passed)
    suggestions = [hint for passed, hint in checks if not passed]

    if score <= 2:
        strength = "weak"
    elif score == 3:
        strength = "medium"
    elif score == 4:
        strength = "strong"
    else:
        strength = "very_strong"

    return {
        "strength": strength,
        "score": score,
        "suggestions": suggestions or ["Strong password!"],
    }
