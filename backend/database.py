"""
database.py - Schema migration for the Supabase Postgres database.
Requests never go through SQLAlchemy (they use PostgREST, see supabase_rest.py);
this module only creates the tables declared in models/ and seeds the
achievement catalog. Run it with ``python migrate.py``.
"""

import os
import logging

from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker, declarative_base

from config import DATABASE_URL

logger = logging.getLogger(__name__)

ACHIEVEMENT_CATALOG = [
    {"slug": "first-expense", "title": "First expense", "description": "Record your first expense.", "points": 10},
    {"slug": "week-streak", "title": "Week streak", "description": "Record expenses on 7 different days in one week.", "points": 30},
    {"slug": "eco-warrior", "title": "Eco warrior", "description": "Log 3 transport trips in one week.", "points": 20},
]

Base = declarative_base()


def make_engine(url: str = DATABASE_URL):
    # Only use connect_args if we are using SQLite
    engine_args = {}
    if url.startswith("sqlite"):
        engine_args["connect_args"] = {"check_same_thread": False}
    else:
        engine_args["pool_pre_ping"] = True
    return create_engine(url, echo=False, **engine_args)


def seed_achievements(session) -> int:
    """Insert catalog entries missing by slug. Returns how many were added."""
    from models.achievement import Achievement

    existing = set(session.scalars(select(Achievement.slug)).all())
    added = 0
    for entry in ACHIEVEMENT_CATALOG:
        if entry["slug"] not in existing:
            session.add(Achievement(**entry))
            added += 1
    session.commit()
    return added


def init_db(url: str = DATABASE_URL):
    """Create all tables and seed the achievement catalog. Returns the engine."""
    if url.startswith("sqlite:///./"):
        os.makedirs(os.path.dirname(url.replace("sqlite:///", "")) or ".", exist_ok=True)

    # Import all models so they register with Base.metadata
    import models  # noqa: F401

    engine = make_engine(url)
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    with SessionLocal() as session:
        added = seed_achievements(session)
    logger.info("Database initialized (%d achievements seeded).", added)
    return engine

