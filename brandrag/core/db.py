"""
SQLite storage for content vectors, known users, the durable SystemConfig
and per-user rate-limit overrides.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator

from .config import DB_PATH, ensure_db_directory


@contextmanager
def get_db(db_path: str = None) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection."""
    conn = sqlite3.connect(db_path or DB_PATH)
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: str = None):
    """Initialize the database with required tables."""
    ensure_db_directory(db_path)

    with get_db(db_path) as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS users (
                user_id TEXT PRIMARY KEY,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        # performance and created_at are denormalized out of metadata so that
        # rate limiting and cleanup can filter in SQL
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS content_vectors (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                content_type TEXT NOT NULL,
                content_id TEXT NOT NULL,
                embedding TEXT NOT NULL,
                metadata TEXT NOT NULL,
                text_content TEXT,
                source_collection TEXT,
                source_doc_id TEXT,
                created_at TEXT NOT NULL,
                performance REAL NOT NULL DEFAULT 0
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS system_config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS user_rate_limits (
                user_id TEXT PRIMARY KEY,
                enabled BOOLEAN DEFAULT FALSE,
                max_per_hour INTEGER,
                max_per_day INTEGER
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_vectors_user_content ON content_vectors(user_id, content_id)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_vectors_user_created ON content_vectors(user_id, created_at)')

        conn.commit()


def health_check(db_path: str = None):
    """Check database health."""
    try:
        with get_db(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [table[0] for table in cursor.fetchall()]
            required_tables = ['users', 'content_vectors', 'system_config', 'user_rate_limits']
            return all(table in table_names for table in required_tables)
    except sqlite3.Error:
        return False
