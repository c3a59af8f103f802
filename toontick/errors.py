"""Library error kinds and translation of raw SQLite failures into them."""

import sqlite3


SETUP_REQUIRED_MESSAGE = (
    'Database table "user_library" does not exist. '
    "Run scripts/init_db.py (or restart the app) to create the schema."
)
TRANSIENT_MESSAGE = "The library is temporarily unavailable. Please try again."


class LibraryError(Exception):
    """Base error carrying a user-facing message."""

    status = 400
    level = "error"

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"error": self.message, "level": self.level}


class ValidationError(LibraryError):
    status = 400


class DuplicateError(LibraryError):
    # Duplicates are a "nothing to do" notice, not a failure.
    status = 409
    level = "warning"


class AuthRequiredError(LibraryError):
    status = 401

    def __init__(self, message="Please sign in to manage your library."):
        super().__init__(message)


class PermissionDeniedError(LibraryError):
    status = 403

    def __init__(self, message="Permission denied. Please sign in again."):
        super().__init__(message)


class NotFoundError(LibraryError):
    status = 404


class StoreUnavailableError(LibraryError):
    status = 503

    def __init__(self, message=TRANSIENT_MESSAGE, setup_required=False):
        super().__init__(message)
        self.setup_required = setup_required

    def to_dict(self):
        payload = super().to_dict()
        payload["setup_required"] = self.setup_required
        return payload


class CatalogError(LibraryError):
    status = 502


def is_unique_violation(exc):
    return isinstance(exc, sqlite3.IntegrityError) and "UNIQUE constraint failed" in str(exc)


def translate_store_error(exc, title=None):
    """Map a sqlite3 exception to the matching LibraryError."""
    if isinstance(exc, LibraryError):
        return exc
    text = str(exc)
    if isinstance(exc, sqlite3.IntegrityError):
        if is_unique_violation(exc):
            return DuplicateError(f"{title or 'This title'} is already in your library")
        if "CHECK constraint failed" in text:
            return ValidationError(
                "Invalid status value. Status must be one of: "
                "reading, completed, on_hold, dropped, plan_to_read."
            )
        return ValidationError("The library entry is not valid.")
    if isinstance(exc, sqlite3.OperationalError):
        lowered = text.lower()
        if "no such table" in lowered:
            return StoreUnavailableError(SETUP_REQUIRED_MESSAGE, setup_required=True)
        if "readonly" in lowered or "not authorized" in lowered:
            return PermissionDeniedError()
    return StoreUnavailableError()
