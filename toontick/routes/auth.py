"""Authentication API routes; sign-in and sign-out drive library migration."""

from flask import Blueprint, jsonify, request, session

from toontick.services import auth as auth_service
from toontick.services import library as library_service


auth_bp = Blueprint("auth", __name__, url_prefix="/toontick/api/auth")


def _json_error(message, status=400):
    return jsonify({"error": message, "level": "error"}), status


def _credentials():
    data = request.get_json(silent=True) or {}
    return (data.get("email") or "").strip(), data.get("password") or ""


def _sign_in(user):
    # Migrate first: a failed migration leaves the caller signed out with the guest slot intact.
    library = library_service.handle_auth_event(library_service.SIGNED_IN, user["id"])
    session["user_id"] = user["id"]
    session["email"] = user["email"]
    return library


@auth_bp.post("/register")
def register():
    email, password = _credentials()
    user, error = auth_service.register(email, password)
    if error:
        return _json_error(error)
    library = _sign_in(user)
    return jsonify({"ok": True, "user": user, "library": library}), 201


@auth_bp.post("/login")
def login():
    email, password = _credentials()
    user, error = auth_service.login(email, password)
    if error:
        return _json_error(error, status=401)
    library = _sign_in(user)
    return jsonify({"ok": True, "user": user, "library": library})


@auth_bp.post("/logout")
def logout():
    session.pop("user_id", None)
    session.pop("email", None)
    library_service.handle_auth_event(library_service.SIGNED_OUT)
    return jsonify({"ok": True})


@auth_bp.post("/refresh")
def refresh():
    """Keep the session alive."""
    user_id = session.get("user_id")
    if not user_id:
        return _json_error("Your session has expired. Please log in again.", status=401)
    session.modified = True
    library_service.handle_auth_event(library_service.TOKEN_REFRESHED, user_id)
    return jsonify({"ok": True, "user": user_id})


@auth_bp.post("/change-password")
def change_password():
    user_id = session.get("user_id")
    if not user_id:
        return _json_error("auth required", status=401)

    data = request.get_json(silent=True) or {}
    current_password = data.get("current_password") or ""
    new_password = data.get("new_password") or ""
    if not current_password or not new_password:
        return _json_error("current_password and new_password required")

    error = auth_service.change_password(user_id, current_password, new_password)
    if error:
        return _json_error(error)
    return jsonify({"ok": True})


@auth_bp.post("/delete-account")
def delete_account():
    user_id = session.get("user_id")
    if not user_id:
        return _json_error("auth required", status=401)

    error = auth_service.delete_account(user_id)
    if error:
        return _json_error(error)

    session.pop("user_id", None)
    session.pop("email", None)
    library_service.handle_auth_event(library_service.SIGNED_OUT)
    return jsonify({"ok": True})
