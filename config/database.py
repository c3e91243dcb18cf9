from __future__ import annotations

import os
from urllib.parse import urlparse, parse_qsl, urlencode, urlunparse

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, scoped_session, declarative_base
from sqlalchemy.pool import StaticPool

from config import settings

LOCAL_DB_URL = "sqlite:///instance/local.db"


def normalize_db_url(url: str, sslmode: str | None = None) -> str:
    """
    Normalize DATABASE_URL for SQLAlchemy + psycopg2.

    - postgres:// and postgresql:// become postgresql+psycopg2://
    - `sslmode` (DB_SSLMODE) is appended to Postgres URLs that don't set one
    - sqlite URLs are returned untouched
    """
    if not url or url.startswith("sqlite:"):
        return url

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            url = "postgresql+psycopg2://" + url[len(prefix):]
            break

    if sslmode and url.startswith("postgresql"):
        parsed = urlparse(url)
        query = dict(parse_qsl(parsed.query, keep_blank_values=True))
        if "sslmode" not in query:
            query["sslmode"] = sslmode
            url = urlunparse(parsed._replace(query=urlencode(query)))

    return url


def engine_options(url: str) -> dict:
    """create_engine kwargs for the backend behind `url`."""
    if not url.startswith("sqlite:"):
        # batch passes hold one connection for minutes; drop dead ones first
        return {"pool_pre_ping": True}

    options = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, or every session sees an empty database
        options["poolclass"] = StaticPool
    return options


DB_URL = normalize_db_url(settings.DATABASE_URL or LOCAL_DB_URL, settings.DB_SSLMODE)

if DB_URL == LOCAL_DB_URL:
    os.makedirs("instance", exist_ok=True)

# No DB I/O at import time
engine = create_engine(DB_URL, future=True, **engine_options(DB_URL))
SessionLocal = scoped_session(
    sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
)
Base = declarative_base()


def healthcheck() -> None:
    """Lightweight DB ping for the debug route."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
