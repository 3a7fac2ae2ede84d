#!/usr/bin/env python3
import os
from dotenv import load_dotenv
from app import create_app
from app.utils.db import ensure_schema
import app.models  # noqa: F401  registers every table on db.metadata

load_dotenv()

app = create_app()

with app.app_context():
    created = ensure_schema()
    if created:
        app.logger.info(f"Created missing tables: {', '.join(created)}")
    else:
        app.logger.info("Database schema is up to date")

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5001))
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_ENV") == "development")
