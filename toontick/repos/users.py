"""Data-access helpers for user account rows."""

from toontick.db import get_db
from toontick.repos import library as library_repo


# User repository: credential row reads/writes in the users table.
def get_by_email(email):
    """Fetch a user row by email, ignoring case."""
    db = get_db()
    cur = db.execute("SELECT * FROM users WHERE lower(email) = lower(?)", (email,))
    return cur.fetchone()


def get_by_id(user_id):
    """Fetch a user row by id, or None."""
    db = get_db()
    cur = db.execute("SELECT * FROM users WHERE id = ?", (user_id,))
    return cur.fetchone()


def create_user(user_id, email, password_hash):
    """Insert a user; the email is stored trimmed and lowercased."""
    db = get_db()
    db.execute(
        "INSERT INTO users (id, email, password_hash) VALUES (?, ?, ?)",
        (user_id, (email or "").strip().lower(), password_hash),
    )
    db.commit()


def set_password_hash(user_id, password_hash):
    """Replace the stored password hash."""
    db = get_db()
    db.execute("UPDATE users SET password_hash = ? WHERE id = ?", (password_hash, user_id))
    db.commit()


def delete_user(user_id):
    """Delete the user and every library row they own."""
    library_repo.delete_all_for_user(user_id)
    db = get_db()
    db.execute("DELETE FROM users WHERE id = ?", (user_id,))
    db.commit()
