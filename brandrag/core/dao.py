"""
Data access for the context engine.

All SQL lives here. sqlite errors are re-raised as PersistenceError; deciding
whether a failure is absorbed or surfaced is left to the calling component.
"""

import json
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional

from .db import get_db, init_db
from .schema import (
    ContentType,
    ContentVector,
    PersistenceError,
    UserRateLimitOverride,
    VectorMetadata,
)

_VECTOR_COLUMNS = (
    "id, user_id, content_type, content_id, embedding, metadata, "
    "text_content, source_collection, source_doc_id"
)


def format_ts(value: datetime) -> str:
    """Fixed-width ISO timestamp so stored values compare correctly as text."""
    return value.isoformat(timespec="microseconds")


def _row_to_vector(row) -> ContentVector:
    (row_id, user_id, content_type, content_id, embedding, metadata,
     text_content, source_collection, source_doc_id) = row
    return ContentVector(
        id=row_id,
        user_id=user_id,
        content_type=ContentType(content_type),
        content_id=content_id,
        embedding=json.loads(embedding),
        metadata=VectorMetadata.from_dict(json.loads(metadata)),
        text_content=text_content or "",
        source_collection=source_collection or "",
        source_doc_id=source_doc_id or "",
    )


class VectorDAO:
    """SQLite-backed persistence for vectors, users, config and quota overrides."""

    def __init__(self, db_path: str = None, initialize: bool = True):
        self.db_path = db_path
        if initialize:
            init_db(db_path)

    # Users

    def register_user(self, user_id: str) -> None:
        try:
            with get_db(self.db_path) as conn:
                conn.execute("INSERT OR IGNORE INTO users (user_id) VALUES (?)", (user_id,))
                conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to register user '{user_id}': {e}") from e

    def list_users(self) -> List[str]:
        try:
            with get_db(self.db_path) as conn:
                rows = conn.execute("SELECT user_id FROM users ORDER BY user_id").fetchall()
                return [row[0] for row in rows]
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to list users: {e}") from e

    # Vectors

    def insert_vector(self, vector: ContentVector) -> int:
        """Insert a vector and return its row id."""
        meta = vector.metadata
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.execute(
                    "INSERT INTO content_vectors (user_id, content_type, content_id, embedding, metadata, "
                    "text_content, source_collection, source_doc_id, created_at, performance) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        vector.user_id,
                        ContentType(vector.content_type).value,
                        vector.content_id,
                        json.dumps(list(vector.embedding)),
                        json.dumps(meta.to_dict()),
                        vector.text_content,
                        vector.source_collection,
                        vector.source_doc_id,
                        format_ts(meta.created_at or datetime.now()),
                        meta.performance,
                    ),
                )
                conn.commit()
                return cursor.lastrowid
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to insert vector '{vector.content_id}': {e}") from e

    def update_vector(self, vector: ContentVector) -> None:
        """Overwrite embedding, text and metadata of an existing row."""
        if vector.id is None:
            raise PersistenceError(f"Cannot update vector '{vector.content_id}' without a row id")
        try:
            with get_db(self.db_path) as conn:
                conn.execute(
                    "UPDATE content_vectors SET embedding = ?, metadata = ?, text_content = ?, performance = ? "
                    "WHERE id = ?",
                    (
                        json.dumps(list(vector.embedding)),
                        json.dumps(vector.metadata.to_dict()),
                        vector.text_content,
                        vector.metadata.performance,
                        vector.id,
                    ),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to update vector '{vector.content_id}': {e}") from e

    def find_by_content_id(self, user_id: str, content_id: str) -> Optional[ContentVector]:
        """First stored vector for ``content_id`` in the user's set."""
        try:
            with get_db(self.db_path) as conn:
                row = conn.execute(
                    f"SELECT {_VECTOR_COLUMNS} FROM content_vectors WHERE user_id = ? AND content_id = ? "
                    "ORDER BY id LIMIT 1",
                    (user_id, content_id),
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to look up vector '{content_id}': {e}") from e
        return _row_to_vector(row) if row else None

    def list_vectors(self, user_id: str, content_type: Optional[ContentType] = None) -> List[ContentVector]:
        query = f"SELECT {_VECTOR_COLUMNS} FROM content_vectors WHERE user_id = ?"
        params: List[Any] = [user_id]
        if content_type is not None:
            query += " AND content_type = ?"
            params.append(ContentType(content_type).value)
        query += " ORDER BY id"

        try:
            with get_db(self.db_path) as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to list vectors for user '{user_id}': {e}") from e
        return [_row_to_vector(row) for row in rows]

    def count_vectors(self, user_id: str) -> int:
        try:
            with get_db(self.db_path) as conn:
                return conn.execute(
                    "SELECT COUNT(*) FROM content_vectors WHERE user_id = ?", (user_id,)
                ).fetchone()[0]
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to count vectors for user '{user_id}': {e}") from e

    def count_vectors_since(self, user_id: str, since: datetime) -> int:
        """Vectors created at or after ``since``."""
        try:
            with get_db(self.db_path) as conn:
                return conn.execute(
                    "SELECT COUNT(*) FROM content_vectors WHERE user_id = ? AND created_at >= ?",
                    (user_id, format_ts(since)),
                ).fetchone()[0]
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to count recent vectors for user '{user_id}': {e}") from e

    def delete_stale_vectors(self, user_id: str, cutoff: datetime, min_performance: float) -> int:
        """Delete, in one transaction, vectors older than ``cutoff`` AND below ``min_performance``."""
        try:
            with get_db(self.db_path) as conn:
                with conn:
                    cursor = conn.execute(
                        "DELETE FROM content_vectors WHERE user_id = ? AND created_at < ? AND performance < ?",
                        (user_id, format_ts(cutoff), min_performance),
                    )
                    return cursor.rowcount
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to delete stale vectors for user '{user_id}': {e}") from e

    # System config

    def get_system_config(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            with get_db(self.db_path) as conn:
                row = conn.execute("SELECT value FROM system_config WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to read system config '{key}': {e}") from e
        return json.loads(row[0]) if row else None

    def save_system_config(self, key: str, document: Dict[str, Any]) -> None:
        try:
            with get_db(self.db_path) as conn:
                conn.execute(
                    "INSERT INTO system_config (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP",
                    (key, json.dumps(document)),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to save system config '{key}': {e}") from e

    # Rate-limit overrides

    def get_rate_limit_override(self, user_id: str) -> Optional[UserRateLimitOverride]:
        try:
            with get_db(self.db_path) as conn:
                row = conn.execute(
                    "SELECT enabled, max_per_hour, max_per_day FROM user_rate_limits WHERE user_id = ?",
                    (user_id,),
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to read rate limit override for '{user_id}': {e}") from e
        if not row:
            return None
        enabled, max_per_hour, max_per_day = row
        return UserRateLimitOverride(
            enabled=bool(enabled),
            max_embeddings_per_hour=max_per_hour,
            max_embeddings_per_day=max_per_day,
        )

    def set_rate_limit_override(self, user_id: str, override: UserRateLimitOverride) -> None:
        try:
            with get_db(self.db_path) as conn:
                conn.execute(
                    "INSERT INTO user_rate_limits (user_id, enabled, max_per_hour, max_per_day) VALUES (?, ?, ?, ?) "
                    "ON CONFLICT(user_id) DO UPDATE SET enabled = excluded.enabled, "
                    "max_per_hour = excluded.max_per_hour, max_per_day = excluded.max_per_day",
                    (user_id, override.enabled, override.max_embeddings_per_hour, override.max_embeddings_per_day),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to save rate limit override for '{user_id}': {e}") from e
