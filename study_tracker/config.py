"""Study tracker configuration: loaded from environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# Jinja2 templates for report emails
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

# Supabase
SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.environ.get("SUPABASE_SERVICE_KEY", "")

# Resend (email sending)
RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "")
RESEND_FROM_EMAIL = os.environ.get("RESEND_FROM_EMAIL", "reports@studytracker.app")
RESEND_FROM_NAME = os.environ.get("RESEND_FROM_NAME", "Study Tracker")

# Bearer secret for the /api/admin endpoints
ADMIN_SECRET = os.environ.get("ADMIN_SECRET", "")

# Server
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "3000"))

# Accountability reports
REPORT_SEND_INTERVAL_SECONDS = float(os.environ.get("REPORT_SEND_INTERVAL_SECONDS", "1.0"))
QUICKCHART_URL = os.environ.get("QUICKCHART_URL", "https://quickchart.io/chart")
