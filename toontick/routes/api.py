"""Library and catalog JSON endpoints."""

from functools import wraps

from flask import Blueprint, current_app, jsonify, request, session

from toontick.errors import LibraryError, ValidationError
from toontick.services import library as library_service

api_bp = Blueprint("api", __name__, url_prefix="/toontick/api")


def login_required(fn):
    """Reject the request with 401 unless a user is signed in."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not session.get("user_id"):
            return jsonify({"error": "Please sign in to manage your library.", "level": "error"}), 401
        return fn(*args, **kwargs)

    return wrapper


@api_bp.app_errorhandler(LibraryError)
def handle_library_error(error):
    """Render any LibraryError as its JSON payload and status."""
    # Only the mapped, user-facing message leaves the service.
    return jsonify(error.to_dict()), error.status


def _catalog():
    return current_app.extensions["catalog"]


def _parse_list(value):
    """Split a comma-separated query value into trimmed, non-empty items."""
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    return [v.strip() for v in str(value).split(",") if v.strip()]


def _parse_int(name, default=None, minimum=None):
    """Read an integer query parameter, raising ValidationError when malformed."""
    value = request.args.get(name)
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number") from None
    if minimum is not None and number < minimum:
        raise ValidationError(f"{name} must be at least {minimum}")
    return number


@api_bp.get("/session")
def get_session():
    """Report whether the caller is signed in."""
    user_id = session.get("user_id")
    return jsonify({"logged_in": bool(user_id), "user": user_id, "email": session.get("email")})


@api_bp.get("/library")
def list_library():
    """List the active library: remote rows when signed in, the guest slot otherwise."""
    items = library_service.list_items(session.get("user_id"))
    return jsonify({"items": items, "guest": not session.get("user_id")})


@api_bp.post("/library")
def add_library_item():
    """Add a title to the active library."""
    data = request.get_json(silent=True)
    item = library_service.add_item(session.get("user_id"), data)
    return jsonify({"ok": True, "item": item}), 201


@api_bp.patch("/library/<path:manhwa_id>")
@login_required
def update_library_item(manhwa_id):
    """Apply a partial update to one library entry."""
    data = request.get_json(silent=True) or {}
    item = library_service.update_item(session["user_id"], manhwa_id, data)
    return jsonify({"ok": True, "item": item})


@api_bp.delete("/library/<path:manhwa_id>")
@login_required
def remove_library_item(manhwa_id):
    """Remove a title; removing a missing title still succeeds."""
    library_service.remove_item(session["user_id"], manhwa_id)
    return jsonify({"ok": True})


@api_bp.get("/library/<path:manhwa_id>/present")
def library_item_present(manhwa_id):
    """Whether a title is in the active library. Never fails."""
    present = library_service.is_present(session.get("user_id"), manhwa_id)
    return jsonify({"present": present})


@api_bp.post("/library/migrate")
@login_required
def migrate_library():
    """Move the guest slot into the signed-in user's library."""
    items = library_service.migrate(session["user_id"])
    return jsonify({"ok": True, "items": items})


@api_bp.post("/library/cleanup")
@login_required
def cleanup_library():
    """Delete rows that repeat an older row's title."""
    result = library_service.cleanup_duplicates(session["user_id"])
    return jsonify({"ok": True, **result})


@api_bp.get("/library/setup-check")
def library_setup_check():
    """Step-by-step diagnosis of the library store."""
    return jsonify(library_service.check_setup(session.get("user_id")))


@api_bp.get("/catalog")
def list_catalog():
    """Popular titles, served from the offline catalog while degraded."""
    page = _parse_int("page", default=1, minimum=1)
    count = _parse_int("count", default=3, minimum=1)
    catalog = _catalog()
    items = catalog.list(page, count)
    return jsonify({"items": items, "offline": catalog.use_fallback, "next_page": page + count})


@api_bp.get("/catalog/search")
def search_catalog():
    """Search by text and genres with an optional year range."""
    query = (request.args.get("q") or "").strip()
    genres = _parse_list(request.args.get("genres"))
    year_range = {
        "from": _parse_int("year_from"),
        "to": _parse_int("year_to"),
    }
    sort_by = (request.args.get("sort_by") or "releaseDate").strip()
    sort_order = (request.args.get("sort_order") or "desc").strip().lower()
    if sort_order not in {"asc", "desc"}:
        sort_order = "desc"
    catalog = _catalog()
    items = catalog.search(query, genres=genres, year_range=year_range, sort_by=sort_by, sort_order=sort_order)
    return jsonify({"items": items, "offline": catalog.use_fallback})


@api_bp.get("/catalog/<manhwa_id>")
def catalog_details(manhwa_id):
    """Details for one catalog title."""
    return jsonify({"item": _catalog().get(manhwa_id)})


@api_bp.post("/catalog/reset")
def reset_catalog():
    """Clear the offline flag so the next request tries the live API."""
    _catalog().reset()
    return jsonify({"ok": True})
