"""Per-request SQLite connection helpers for the library store."""

import sqlite3
from flask import current_app, g


def get_db():
    """Return the request-scoped connection."""
    if "db" not in g:
        db = sqlite3.connect(current_app.config["DATABASE"])
        db.row_factory = sqlite3.Row
        g.db = db
    return g.db


def close_db(_error=None):
    """Close the request connection, if one was opened."""
    db = g.pop("db", None)
    if db is not None:
        db.close()


def row_to_dict(row):
    """Convert a sqlite3.Row to a plain dict; None passes through."""
    if row is None:
        return None
    return {key: row[key] for key in row.keys()}
