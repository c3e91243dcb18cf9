"""
Environment-driven settings shared by the Flask app and the maintenance scripts.

Values are read from the process environment after `.env` is loaded.
"""
from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

# Unset means a local SQLite file under instance/
DATABASE_URL = os.getenv("DATABASE_URL")
# e.g. "require" for hosted Postgres
DB_SSLMODE = os.getenv("DB_SSLMODE")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
DEBUG_SECRET = os.getenv("DEBUG_SECRET", "changeme")

# Comma-separated list; "*" allows every origin
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Master data import inputs
MASTER_DATA_CSV = os.getenv("MASTER_DATA_CSV", "data/translate_list.csv")
LOCATIONS_CSV = os.getenv("LOCATIONS_CSV", "data/properties_export.csv")

DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "100"))
