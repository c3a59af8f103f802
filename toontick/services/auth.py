"""Authentication business logic and credential validation flow."""

import re
import uuid

from werkzeug.security import check_password_hash, generate_password_hash

from toontick.repos import users as users_repo


ERROR_MESSAGES = {
    "invalid_credentials": "Invalid email or password. Please check your credentials and try again.",
    "email_already_exists": "An account with this email already exists. Please try logging in instead.",
    "user_not_found": "No account found with this email address.",
    "invalid_email": "Please enter a valid email address.",
    "email_required": "Email address is required.",
    "password_required": "Password is required.",
    "password_too_short": "Password must be at least 8 characters long.",
    "invalid_password_format": "Password must contain at least one letter and one number.",
    "current_password_incorrect": "Current password is incorrect.",
}

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _normalize(email):
    """Normalize values for consistent comparisons."""
    return (email or "").strip().lower()


def _public(user):
    return {"id": user["id"], "email": user["email"]}


def validate_email(email):
    if not email:
        return ERROR_MESSAGES["email_required"]
    if not _EMAIL_RE.match(email.strip()):
        return ERROR_MESSAGES["invalid_email"]
    return None


def validate_password(password):
    if not password:
        return ERROR_MESSAGES["password_required"]
    if len(password) < 8:
        return ERROR_MESSAGES["password_too_short"]
    if not re.search(r"[a-zA-Z]", password) or not re.search(r"\d", password):
        return ERROR_MESSAGES["invalid_password_format"]
    return None


def register(email, password):
    """Create an account; returns (user, error)."""
    error = validate_email(email) or validate_password(password)
    if error:
        return None, error
    email = _normalize(email)
    if users_repo.get_by_email(email):
        return None, ERROR_MESSAGES["email_already_exists"]

    user_id = uuid.uuid4().hex
    users_repo.create_user(user_id, email, generate_password_hash(password))
    return {"id": user_id, "email": email}, None


def login(email, password):
    """Check credentials; returns (user, error)."""
    error = validate_email(email)
    if error:
        return None, error
    if not password:
        return None, ERROR_MESSAGES["password_required"]

    user = users_repo.get_by_email(_normalize(email))
    if not user or not user["password_hash"]:
        return None, ERROR_MESSAGES["invalid_credentials"]
    if not check_password_hash(user["password_hash"], password):
        return None, ERROR_MESSAGES["invalid_credentials"]
    return _public(user), None


def change_password(user_id, current_password, new_password):
    """Change password after validation."""
    user = users_repo.get_by_id(user_id)
    if not user:
        return ERROR_MESSAGES["user_not_found"]
    if not check_password_hash(user["password_hash"] or "", current_password):
        return ERROR_MESSAGES["current_password_incorrect"]

    error = validate_password(new_password)
    if error:
        return error
    users_repo.set_password_hash(user_id, generate_password_hash(new_password))
    return None


def delete_account(user_id):
    user = users_repo.get_by_id(user_id)
    if not user:
        return ERROR_MESSAGES["user_not_found"]
    users_repo.delete_user(user_id)
    return None
