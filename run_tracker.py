#!/usr/bin/env python3
"""Study Tracker: API server and accountability report scheduler.

Launch: python3 run_tracker.py
Serves at http://0.0.0.0:3000 (or PORT env var)
"""

import logging
import os

import uvicorn

from study_tracker.config import HOST, PORT


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    print("=" * 60)
    print("  Study Tracker")
    print("=" * 60)

    if not os.environ.get("SUPABASE_URL", ""):
        print("\n  WARNING: SUPABASE_URL not set. Set environment variables:")
        print("    SUPABASE_URL, SUPABASE_SERVICE_KEY")
        print("  Reports will fail until the database is reachable.\n")

    if not os.environ.get("RESEND_API_KEY", ""):
        print("  WARNING: RESEND_API_KEY not set, report emails will not be sent.\n")

    url = f"http://{HOST}:{PORT}"
    print(f"  API: {url}")
    print("  Press Ctrl+C to stop\n")

    from study_tracker.app import create_app
    app = create_app()
    uvicorn.run(app, host=HOST, port=PORT, log_level="info")


if __name__ == "__main__":
    main()
