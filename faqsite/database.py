"""
SQLite Build Manifest
=====================
Persistent record of build runs and of the pages each run produced.
Used to report build history and to remove pages whose source article
has disappeared from the corpus.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

MANIFEST_NAME = ".manifest.sqlite"


def get_db_path(output_dir: str = "site") -> str:
    """Return the configured manifest path."""
    return os.environ.get(
        "FAQSITE_DB_PATH", str(Path(output_dir) / MANIFEST_NAME)
    )


@contextmanager
def get_connection(db_path: str):
    """
    Context manager for database connections.
    Ensures proper commit/rollback and connection cleanup.
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_path: str):
    """
    Initialize the manifest schema.
    Safe to call multiple times (IF NOT EXISTS).
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Initializing manifest at: {db_path}")

    with get_connection(db_path) as conn:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS builds (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                content_dir TEXT NOT NULL,
                output_dir TEXT NOT NULL,
                builder_version TEXT DEFAULT '1.0.0',
                template_hash TEXT DEFAULT '',
                status TEXT DEFAULT 'running',
                documents INTEGER DEFAULT 0,
                pages_written INTEGER DEFAULT 0,
                pages_unchanged INTEGER DEFAULT 0,
                pages_removed INTEGER DEFAULT 0,
                error_count INTEGER DEFAULT 0,
                last_error TEXT DEFAULT NULL,
                started_at TEXT NOT NULL,
                finished_at TEXT DEFAULT NULL
            );

            CREATE TABLE IF NOT EXISTS pages (
                output_path TEXT PRIMARY KEY,
                source_path TEXT DEFAULT '',
                source_hash TEXT DEFAULT '',
                output_hash TEXT DEFAULT '',
                build_id INTEGER,
                FOREIGN KEY(build_id) REFERENCES builds(id) ON DELETE SET NULL
            );

            CREATE INDEX IF NOT EXISTS idx_pages_source
                ON pages(source_path);
        """)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ─── Builds ───────────────────────────────────────────────────────────────────


def start_build(
    db_path: str,
    content_dir: str,
    output_dir: str,
    builder_version: str,
    template_hash: str = "",
) -> int:
    with get_connection(db_path) as conn:
        cursor = conn.execute(
            """
            INSERT INTO builds (content_dir, output_dir, builder_version,
                                template_hash, started_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (content_dir, output_dir, builder_version, template_hash, _now()),
        )
        build_id = cursor.lastrowid
    logger.info(f"Build #{build_id} started")
    return build_id


def finish_build(
    db_path: str,
    build_id: int,
    status: str = "success",
    documents: int = 0,
    pages_written: int = 0,
    pages_unchanged: int = 0,
    pages_removed: int = 0,
    error_count: int = 0,
    last_error: Optional[str] = None,
):
    with get_connection(db_path) as conn:
        conn.execute(
            """
            UPDATE builds
               SET status = ?, documents = ?, pages_written = ?,
                   pages_unchanged = ?, pages_removed = ?, error_count = ?,
                   last_error = ?, finished_at = ?
             WHERE id = ?
            """,
            (
                status, documents, pages_written, pages_unchanged,
                pages_removed, error_count, last_error, _now(), build_id,
            ),
        )


def list_builds(db_path: str, limit: int = 20) -> list[dict]:
    """Most recent builds first."""
    if not Path(db_path).exists():
        return []
    with get_connection(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM builds ORDER BY id DESC LIMIT ?", (limit,)
        ).fetchall()
    return [dict(row) for row in rows]


# ─── Pages ────────────────────────────────────────────────────────────────────


def upsert_pages(db_path: str, build_id: int, pages: list[dict]):
    """
    Record the pages produced by a build.
    Each dict holds output_path, source_path, source_hash, output_hash.
    """
    with get_connection(db_path) as conn:
        conn.executemany(
            """
            INSERT INTO pages (output_path, source_path, source_hash,
                               output_hash, build_id)
            VALUES (:output_path, :source_path, :source_hash,
                    :output_hash, :build_id)
            ON CONFLICT(output_path) DO UPDATE SET
                source_path = excluded.source_path,
                source_hash = excluded.source_hash,
                output_hash = excluded.output_hash,
                build_id = excluded.build_id
            """,
            [{**page, "build_id": build_id} for page in pages],
        )


def get_pages(db_path: str) -> dict[str, dict]:
    """output_path -> page row."""
    with get_connection(db_path) as conn:
        rows = conn.execute("SELECT * FROM pages").fetchall()
    return {row["output_path"]: dict(row) for row in rows}


def delete_pages(db_path: str, output_paths: list[str]) -> int:
    if not output_paths:
        return 0
    with get_connection(db_path) as conn:
        cursor = conn.executemany(
            "DELETE FROM pages WHERE output_path = ?",
            [(path,) for path in output_paths],
        )
        return cursor.rowcount
