import sys
import os

sys.path.append(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
)  # relative imports

from app import create_app, db
import app.models  # noqa: F401


def rebuild_database():
    """Drop and recreate every table, including the PostgreSQL enum types"""
    flask_app = create_app()
    with flask_app.app_context():
        # Drop all tables
        print("Dropping all tables...")
        db.drop_all()

        # Create all tables
        print("Creating all tables...")
        db.create_all()
        print(f"Database rebuilt successfully! Tables: {', '.join(sorted(db.metadata.tables))}")


if __name__ == "__main__":
    rebuild_database()
