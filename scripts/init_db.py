#!/usr/bin/env python3
"""
Create the database tables for DATABASE_URL (idempotent).

Usage:
    python scripts/init_db.py
"""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def main() -> int:
    from dotenv import load_dotenv

    from app.peerreview.config import load_settings
    from app.peerreview.db import init_db
    from app.peerreview.loggers import init_loggers

    load_dotenv()
    settings = load_settings()
    logger = init_loggers(settings.env)
    db = init_db(settings.database_url, env=settings.env)
    try:
        db.create_all()
        logger.info("Tables created for %s", db.engine.url.render_as_string(hide_password=True))
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
