"""Bootstrap script that initializes the SQLite schema."""

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from toontick.app import _default_db_path, init_db  # noqa: E402


def main():
    """Run the script entrypoint."""
    parser = argparse.ArgumentParser(description="Create the ToonTick database tables.")
    parser.add_argument(
        "--db",
        default=os.environ.get("TOONTICK_DB_PATH", _default_db_path()),
        help="SQLite database path",
    )
    args = parser.parse_args()

    init_db(args.db)
    print(f"Initialized database at {args.db}")


if __name__ == "__main__":
    main()
