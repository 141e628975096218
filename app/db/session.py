# app/db/session.py

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import DATABASE_URL


def normalize_db_url(url: str) -> str:
    """
    Accept sqlite and Postgres (Supabase) URLs.
    Supabase hands out postgres://, which SQLAlchemy no longer accepts.
    """
    url = (url or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is empty. Set it in .env or your environment.")

    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]

    if not (url.startswith("sqlite") or url.startswith("postgresql")):
        raise RuntimeError(f"Invalid DATABASE_URL scheme: {url!r}")
    return url


def engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    # Supabase's pooler drops idle connections
    return {"pool_pre_ping": True, "pool_recycle": 300, "pool_size": 5, "max_overflow": 5}


DB_URL = normalize_db_url(DATABASE_URL)

engine = create_engine(DB_URL, **engine_kwargs(DB_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
