#!/usr/bin/env python3
"""
Create the GreenLedger tables on DATABASE_URL and seed the achievement catalog.
Point DATABASE_URL at the Supabase Postgres connection string before running.
"""
import logging
import sys

from config import DATABASE_URL, LOG_LEVEL
from database import init_db

if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL)
    url = sys.argv[1] if len(sys.argv) > 1 else DATABASE_URL
    init_db(url)
