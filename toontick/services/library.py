"""Library reconciliation: the single authority for library mutations.

Guests keep their library in a client-side slot (see ``repos.guest_library``);
signed-in users keep it in the ``user_library`` table. Every mutation picks
its backing store from the caller's ``user_id`` and goes through the duplicate
checks and status normalization here before anything is written.

Duplicate safety is two-phase. The lookups in :func:`add_item` are a cheap
pre-check that gives a friendly message; the table's unique
``(user_id, manhwa_id)`` key is what actually guarantees one row per title, and
a violation of it is reported as the same :class:`DuplicateError`.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone

from toontick.errors import (
    AuthRequiredError,
    DuplicateError,
    NotFoundError,
    ValidationError,
    is_unique_violation,
    translate_store_error,
)
from toontick.repos import guest_library as guest_repo
from toontick.repos import library as library_repo
from toontick.services.status import clamp_progress, normalize_status


logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"

SETUP_CHECK_ID = "test-setup-check"

GUEST_LIBRARY_FULL_MESSAGE = "Your guest library is full. Sign in to keep adding titles."

_PATCH_FIELDS = {
    "status": "status",
    "progress": "progress",
    "chapters": "chapters",
    "title": "title",
    "image": "image",
    "year": "year",
    "popularity": "popularity",
    "average_score": "average_score",
    "averageScore": "average_score",
}
# Fields the reconciler owns; clients echoing them back are ignored.
_OWNED_FIELDS = {"id", "user_id", "manhwa_id", "created_at", "updated_at", "createdAt", "updatedAt"}


def _now():
    return datetime.now(timezone.utc).isoformat()


def _key(manhwa_id):
    return str(manhwa_id).strip()


def _optional_int(value, field):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a whole number") from None


def _validate_item(item):
    if not isinstance(item, dict):
        raise ValidationError("Valid manhwa item is required")
    manhwa_id = item.get("id")
    if manhwa_id is None or not _key(manhwa_id):
        raise ValidationError("Valid manhwa item is required (missing id)")
    title = item.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Valid manhwa item is required (missing title)")


@contextmanager
def _store_errors(action, title=None):
    try:
        yield
    except sqlite3.Error as exc:
        logger.error("Library store failed while %s: %s", action, exc)
        raise translate_store_error(exc, title=title) from exc


def _to_row(user_id, item, timestamp):
    chapters = _optional_int(item.get("chapters"), "chapters")
    progress = _optional_int(item.get("progress"), "progress") or 0
    return {
        "user_id": user_id,
        "manhwa_id": _key(item["id"]),
        "title": item["title"].strip(),
        "image": item.get("image"),
        "status": normalize_status(item.get("status")),
        "chapters": chapters,
        "progress": clamp_progress(progress, chapters),
        "average_score": item.get("averageScore", item.get("average_score")),
        "popularity": item.get("popularity"),
        "year": item.get("year"),
        "created_at": timestamp,
        "updated_at": timestamp,
    }


def clear_local_library(slot=None):
    guest_repo.clear(slot)


def list_items(user_id, slot=None):
    """Return the active library: remote rows when signed in, else the guest slot."""
    if not user_id:
        return guest_repo.load(slot)
    with _store_errors("listing library"):
        return library_repo.list_by_user(user_id)


def _add_guest_item(item, slot):
    items = guest_repo.load(slot)
    manhwa_id = _key(item["id"])
    key = library_repo.title_key(item["title"])
    for existing in items:
        if _key(existing.get("id")) == manhwa_id or library_repo.title_key(existing.get("title")) == key:
            logger.warning("Guest add rejected as duplicate: %s", item["title"])
            raise DuplicateError(f"{item['title']} is already in your library!")
    entry = guest_repo.to_entry({**item, "status": "reading", "createdAt": _now()})
    items.append(entry)
    if guest_repo.encoded_size(items) > guest_repo.MAX_SLOT_BYTES:
        logger.warning("Guest library full, rejected %s (%s entries)", item["title"], len(items) - 1)
        raise ValidationError(GUEST_LIBRARY_FULL_MESSAGE)
    guest_repo.save(items, slot)
    return entry


def add_item(user_id, item, slot=None):
    """Add a title to the active library and return the stored entry."""
    _validate_item(item)
    if not user_id:
        return _add_guest_item(item, slot)

    title = item["title"].strip()
    with _store_errors("checking for duplicates", title=title):
        existing = library_repo.get(user_id, item["id"])
        if existing:
            logger.warning("Add rejected, %s already in library by id", title)
            raise DuplicateError(f"{title} is already in your library")
        by_title = library_repo.find_by_title(user_id, title)
    if by_title:
        logger.warning(
            "Add rejected, %s already in library by title (existing id %s, new id %s)",
            title,
            by_title[0]["manhwa_id"],
            _key(item["id"]),
        )
        raise DuplicateError(f'"{title}" is already in your library (possibly with different ID)')

    row = _to_row(user_id, item, _now())
    with _store_errors("adding to library", title=title):
        return library_repo.insert(row)


def remove_item(user_id, manhwa_id):
    """Delete a title from the user's library; removing a missing title is not an error."""
    if not user_id:
        raise AuthRequiredError()
    if manhwa_id is None or not _key(manhwa_id):
        raise ValidationError("manhwa_id is required")
    with _store_errors("removing from library"):
        library_repo.delete(user_id, manhwa_id)
    return True


def _build_patch(patch, existing):
    fields = {}
    for name, value in (patch or {}).items():
        if name in _OWNED_FIELDS:
            continue
        column = _PATCH_FIELDS.get(name)
        if column is None:
            raise ValidationError(f"Unknown field: {name}")
        fields[column] = value

    if "title" in fields:
        title = fields["title"]
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("title cannot be empty")
        fields["title"] = title.strip()
    if "status" in fields:
        fields["status"] = normalize_status(fields["status"])
    if "chapters" in fields:
        fields["chapters"] = _optional_int(fields["chapters"], "chapters")

    chapters = fields["chapters"] if "chapters" in fields else existing.get("chapters")
    if "progress" in fields:
        progress = _optional_int(fields["progress"], "progress") or 0
        fields["progress"] = clamp_progress(progress, chapters)
    elif "chapters" in fields:
        current = existing.get("progress") or 0
        clamped = clamp_progress(current, chapters)
        if clamped != current:
            fields["progress"] = clamped

    fields["updated_at"] = _now()
    return fields


def update_item(user_id, manhwa_id, patch):
    """Apply a partial update and return the updated row.

    ``completed`` does not imply ``progress == chapters``; callers that want
    both must send both.
    """
    if not user_id:
        raise AuthRequiredError()
    if patch is not None and not isinstance(patch, dict):
        raise ValidationError("Updates must be an object")
    with _store_errors("loading library item"):
        existing = library_repo.get(user_id, manhwa_id)
    if not existing:
        raise NotFoundError("Failed to update library item: it is not in your library")
    fields = _build_patch(patch, existing)
    with _store_errors("updating library item", title=existing["title"]):
        updated = library_repo.update(user_id, manhwa_id, fields)
    if updated is None:
        raise NotFoundError("Failed to update library item: it is not in your library")
    return updated


def is_present(user_id, manhwa_id, slot=None):
    """Presence check that never raises; store failures read as absent."""
    if manhwa_id is None or not _key(manhwa_id):
        return False
    try:
        if not user_id:
            return any(_key(item.get("id")) == _key(manhwa_id) for item in guest_repo.load(slot))
        return library_repo.get(user_id, manhwa_id) is not None
    except Exception as exc:
        logger.warning("Library presence check failed for %s: %s", manhwa_id, exc)
        return False


def migrate(user_id, slot=None):
    """Move guest entries into the user's library and return the combined library.

    Entries whose id is already remote are skipped. The rest are upserted on
    ``(user_id, manhwa_id)`` so a second, concurrent migration of the same
    guest data updates rows instead of failing.
    """
    if not user_id:
        raise AuthRequiredError()

    local_items = guest_repo.load(slot)
    with _store_errors("loading library for migration"):
        existing = library_repo.list_by_user(user_id)
    if not local_items:
        return existing

    logger.info(
        "Migrating guest library for %s: %s local, %s remote", user_id, len(local_items), len(existing)
    )
    remote_ids = {_key(row["manhwa_id"]) for row in existing}
    timestamp = _now()
    rows = []
    seen = set()
    for item in local_items:
        if item.get("id") is None or not isinstance(item.get("title"), str) or not item["title"].strip():
            logger.warning("Skipping malformed guest entry during migration: %r", item)
            continue
        manhwa_id = _key(item["id"])
        if manhwa_id in remote_ids or manhwa_id in seen:
            continue
        seen.add(manhwa_id)
        try:
            rows.append(_to_row(user_id, item, timestamp))
        except ValidationError as exc:
            logger.warning("Skipping guest entry %s during migration: %s", manhwa_id, exc.message)

    if not rows:
        logger.info("All guest entries already in library for %s", user_id)
        clear_local_library(slot)
        return existing

    try:
        inserted = library_repo.upsert_many(rows)
    except sqlite3.Error as exc:
        if is_unique_violation(exc):
            # Another migration got there first.
            logger.warning("Duplicate key during migration for %s, keeping existing library", user_id)
            clear_local_library(slot)
            return existing
        logger.error("Library migration failed for %s: %s", user_id, exc)
        raise translate_store_error(exc) from exc

    logger.info("Migrated %s guest entries for %s", len(inserted), user_id)
    clear_local_library(slot)
    return existing + inserted


def cleanup_duplicates(user_id):
    """Delete rows sharing a title with an older row; the oldest copy is kept."""
    if not user_id:
        raise AuthRequiredError()
    library = list_items(user_id)
    groups = {}
    for row in library:
        groups.setdefault(library_repo.title_key(row["title"]), []).append(row)

    duplicates = []
    for rows in groups.values():
        if len(rows) < 2:
            continue
        ordered = sorted(rows, key=lambda row: (row["created_at"] or "", row["id"]))
        duplicates.extend(ordered[1:])

    removed = 0
    for row in duplicates:
        try:
            removed += library_repo.delete_by_row_id(user_id, row["id"])
        except sqlite3.Error as exc:
            logger.error("Failed to remove duplicate %s (%s): %s", row["title"], row["manhwa_id"], exc)

    if duplicates:
        logger.info("Duplicate cleanup for %s: %s/%s removed", user_id, removed, len(duplicates))
    return {
        "duplicates_found": len(duplicates),
        "duplicates_removed": removed,
        "details": [{"title": row["title"], "manhwa_id": row["manhwa_id"]} for row in duplicates],
    }


def check_setup(user_id):
    """Diagnose the library store step by step; never raises."""
    checks = []

    def record(name, ok, detail):
        checks.append({"name": name, "ok": ok, "detail": detail})
        return ok

    if not user_id:
        record("session", False, "No authenticated user found")
        return {"ok": False, "checks": checks}
    record("session", True, "User authenticated")

    try:
        if not library_repo.table_exists():
            record("table", False, 'Table "user_library" does not exist')
            return {"ok": False, "checks": checks}
        record("table", True, 'Table "user_library" exists')
        rows = library_repo.list_by_user(user_id)
        record("read", True, f"{len(rows)} library items readable")

        library_repo.delete(user_id, SETUP_CHECK_ID)
        timestamp = _now()
        library_repo.insert(
            {
                "user_id": user_id,
                "manhwa_id": SETUP_CHECK_ID,
                "title": "Setup Test Item",
                "status": "reading",
                "chapters": 0,
                "progress": 0,
                "created_at": timestamp,
                "updated_at": timestamp,
            }
        )
        record("insert", True, "Insert permissions working")
        library_repo.delete(user_id, SETUP_CHECK_ID)
        record("cleanup", True, "Setup test row removed")
    except sqlite3.Error as exc:
        logger.error("Library setup check failed: %s", exc)
        record("store", False, translate_store_error(exc).message)
        return {"ok": False, "checks": checks}

    return {"ok": True, "checks": checks}


def handle_auth_event(event, user_id=None, slot=None):
    """React to session lifecycle events; returns the library after the event."""
    if event == SIGNED_IN:
        return migrate(user_id, slot=slot)
    if event == SIGNED_OUT:
        clear_local_library(slot)
        return []
    if event == TOKEN_REFRESHED:
        return None
    logger.debug("Ignoring unknown auth event %r", event)
    return None
