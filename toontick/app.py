import logging
import os
import sqlite3

from flask import Flask, jsonify

from toontick.db import close_db
from toontick.repos.library import title_key
from toontick.routes.api import api_bp
from toontick.routes.auth import auth_bp
from toontick.services.catalog import (
    ANILIST_API_URL,
    DEFAULT_MIN_INTERVAL,
    DEFAULT_TIMEOUT,
    CatalogClient,
)

BASE_PATH = "/toontick"  # keep all web routes under /toontick

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS user_library (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    manhwa_id TEXT NOT NULL,
    title TEXT NOT NULL,
    title_key TEXT,
    image TEXT,
    status TEXT NOT NULL DEFAULT 'reading'
        CHECK (status IN ('reading', 'completed', 'on_hold', 'dropped', 'plan_to_read')),
    chapters INTEGER,
    progress INTEGER NOT NULL DEFAULT 0 CHECK (progress >= 0),
    average_score REAL,
    popularity INTEGER,
    year INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (user_id, manhwa_id)
);

CREATE INDEX IF NOT EXISTS idx_user_library_user_id ON user_library (user_id);
"""


def _default_db_path():
    root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    return os.path.join(root, "data", "db", "toontick.db")


def init_db(database):
    """Create the users and library tables if they are missing."""
    directory = os.path.dirname(os.path.abspath(database))
    os.makedirs(directory, exist_ok=True)
    db = sqlite3.connect(database)
    try:
        db.executescript(SCHEMA)

        # Add title_key if missing (existing DB) and backfill it from title.
        cols = {row[1] for row in db.execute("PRAGMA table_info(user_library)").fetchall()}
        if "title_key" not in cols:
            db.execute("ALTER TABLE user_library ADD COLUMN title_key TEXT")
        pending = db.execute("SELECT id, title FROM user_library WHERE title_key IS NULL").fetchall()
        db.executemany(
            "UPDATE user_library SET title_key = ? WHERE id = ?",
            [(title_key(title), row_id) for row_id, title in pending],
        )
        db.execute(
            "CREATE INDEX IF NOT EXISTS idx_user_library_title_key ON user_library (user_id, title_key)"
        )
        db.commit()
    finally:
        db.close()


def _configure_logging(level):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def create_app(config=None):
    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.environ.get("FLASK_SECRET_KEY", "dev-change-me")
    app.config["DATABASE"] = os.environ.get("TOONTICK_DB_PATH", _default_db_path())
    app.config["ANILIST_API_URL"] = os.environ.get("ANILIST_API_URL", ANILIST_API_URL)
    app.config["CATALOG_TIMEOUT"] = float(os.environ.get("CATALOG_TIMEOUT", DEFAULT_TIMEOUT))
    app.config["CATALOG_MIN_INTERVAL"] = float(os.environ.get("CATALOG_MIN_INTERVAL", DEFAULT_MIN_INTERVAL))
    app.config["LOG_LEVEL"] = os.environ.get("TOONTICK_LOG_LEVEL", "INFO")
    if config:
        app.config.update(config)

    _configure_logging(app.config["LOG_LEVEL"])
    init_db(app.config["DATABASE"])
    app.teardown_appcontext(close_db)

    # One catalog client per app, so the offline-fallback flag lives on it.
    app.extensions["catalog"] = CatalogClient(
        api_url=app.config["ANILIST_API_URL"],
        timeout=app.config["CATALOG_TIMEOUT"],
        min_interval=app.config["CATALOG_MIN_INTERVAL"],
    )

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)

    @app.route("/")
    @app.route(f"{BASE_PATH}")
    @app.route(f"{BASE_PATH}/")
    def root():
        return jsonify({"name": "ToonTick", "api": f"{BASE_PATH}/api"})

    return app
