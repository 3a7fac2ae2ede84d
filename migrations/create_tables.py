"""Create the InHouse tables that are missing from the configured database.

Usage: python migrations/create_tables.py [--check]

With --check nothing is created; the script lists the missing tables and
exits with status 1 when there are any, for use in deploy pipelines.
"""
import argparse
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from app.utils.db import ensure_schema, missing_tables
import app.models  # noqa: F401


def create_tables(check_only=False) -> int:
    flask_app = create_app()
    with flask_app.app_context():
        if check_only:
            missing = missing_tables()
            print(f"Missing tables: {', '.join(missing)}" if missing else "All tables present")
            return 1 if missing else 0
        created = ensure_schema()
        print(f"Created tables: {', '.join(created)}" if created else "Nothing to create")
        return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--check", action="store_true", help="only report missing tables")
    sys.exit(create_tables(check_only=parser.parse_args().check))
