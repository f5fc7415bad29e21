#!/usr/bin/env python3
"""
Production startup script.

Usage:
    python scripts/start.py --graceful-timeout 30s

Runs the server in this process. SIGINT (Ctrl+C) drains in-flight requests
for up to the graceful timeout before exiting.
"""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


if __name__ == "__main__":
    from app.peerreview.main import main

    sys.exit(main(sys.argv[1:]))
