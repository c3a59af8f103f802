"""Data-access helpers for per-user library rows."""

import unicodedata

from toontick.db import get_db, row_to_dict


ENTRY_COLUMNS = (
    "user_id",
    "manhwa_id",
    "title",
    "title_key",
    "image",
    "status",
    "chapters",
    "progress",
    "average_score",
    "popularity",
    "year",
    "created_at",
    "updated_at",
)

# Columns an upsert conflict is allowed to overwrite.
_UPSERT_UPDATE_COLUMNS = (
    "title",
    "title_key",
    "image",
    "status",
    "chapters",
    "progress",
    "average_score",
    "popularity",
    "year",
    "updated_at",
)


def title_key(title):
    """Return the comparison key used for title duplicate checks."""
    # SQLite lower() only folds ASCII, so the key is computed here.
    return unicodedata.normalize("NFKC", title or "").strip().casefold()


def _with_title_key(entry):
    return {**entry, "title_key": title_key(entry.get("title"))}


# Library repository: rows are keyed by the composite (user_id, manhwa_id).
def list_by_user(user_id):
    """Return the user's rows, newest first."""
    db = get_db()
    cur = db.execute(
        "SELECT * FROM user_library WHERE user_id = ? ORDER BY created_at DESC, id DESC",
        (user_id,),
    )
    return [row_to_dict(row) for row in cur.fetchall()]


def get(user_id, manhwa_id):
    """Return one row by (user_id, manhwa_id), or None."""
    db = get_db()
    cur = db.execute(
        "SELECT * FROM user_library WHERE user_id = ? AND manhwa_id = ?",
        (user_id, str(manhwa_id)),
    )
    return row_to_dict(cur.fetchone())


def find_by_title(user_id, title):
    """Return rows whose title matches ignoring case and surrounding spaces."""
    db = get_db()
    cur = db.execute(
        "SELECT id, title, manhwa_id FROM user_library WHERE user_id = ? AND title_key = ?",
        (user_id, title_key(title)),
    )
    return [row_to_dict(row) for row in cur.fetchall()]


def insert(entry):
    """Insert one row and return it as stored."""
    db = get_db()
    entry = _with_title_key(entry)
    values = tuple(entry.get(column) for column in ENTRY_COLUMNS)
    try:
        cur = db.execute(
            f"""
            INSERT INTO user_library ({", ".join(ENTRY_COLUMNS)})
            VALUES ({", ".join("?" for _ in ENTRY_COLUMNS)})
            """,
            values,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    row = db.execute("SELECT * FROM user_library WHERE id = ?", (cur.lastrowid,)).fetchone()
    return row_to_dict(row)


def upsert_many(entries):
    """Insert rows, updating any that already exist for (user_id, manhwa_id)."""
    if not entries:
        return []
    db = get_db()
    entries = [_with_title_key(entry) for entry in entries]
    assignments = ", ".join(f"{column} = excluded.{column}" for column in _UPSERT_UPDATE_COLUMNS)
    sql = f"""
        INSERT INTO user_library ({", ".join(ENTRY_COLUMNS)})
        VALUES ({", ".join("?" for _ in ENTRY_COLUMNS)})
        ON CONFLICT (user_id, manhwa_id) DO UPDATE SET {assignments}
    """
    try:
        db.executemany(sql, [tuple(entry.get(column) for column in ENTRY_COLUMNS) for entry in entries])
        db.commit()
    except Exception:
        db.rollback()
        raise
    return [get(entry["user_id"], entry["manhwa_id"]) for entry in entries]


def update(user_id, manhwa_id, fields):
    """Apply column changes to one row; returns the row, or None if it is missing."""
    db = get_db()
    if "title" in fields:
        fields = _with_title_key(fields)
    columns = list(fields)
    try:
        cur = db.execute(
            f"""
            UPDATE user_library
            SET {", ".join(f"{column} = ?" for column in columns)}
            WHERE user_id = ? AND manhwa_id = ?
            """,
            (*[fields[column] for column in columns], user_id, str(manhwa_id)),
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    if cur.rowcount == 0:
        return None
    return get(user_id, manhwa_id)


def delete(user_id, manhwa_id):
    """Delete one row; returns how many rows were removed."""
    db = get_db()
    cur = db.execute(
        "DELETE FROM user_library WHERE user_id = ? AND manhwa_id = ?",
        (user_id, str(manhwa_id)),
    )
    db.commit()
    return cur.rowcount


def delete_by_row_id(user_id, row_id):
    """Delete a row by its row identity."""
    # Duplicate cleanup targets the row identity, not manhwa_id.
    db = get_db()
    cur = db.execute(
        "DELETE FROM user_library WHERE user_id = ? AND id = ?",
        (user_id, row_id),
    )
    db.commit()
    return cur.rowcount


def delete_all_for_user(user_id):
    """Delete every row the user owns."""
    db = get_db()
    db.execute("DELETE FROM user_library WHERE user_id = ?", (user_id,))
    db.commit()


def table_exists():
    """Return whether the user_library table is present."""
    db = get_db()
    row = db.execute(
        "SELECT 1 FROM sqlite_master WHERE type='table' AND name='user_library' LIMIT 1"
    ).fetchone()
    return row is not None
