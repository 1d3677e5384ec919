# SQLite storage helper for the parent dashboard

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

from services import config_manager
from services.stats_engine import now_ms

logger = logging.getLogger(__name__)


class DatabaseManager:
    # thin wrapper around sqlite3 with convenience helpers

    def __init__(self, db_path: Optional[str] = None) -> None:
        # determine the sqlite path and make sure the folder exists
        self.db_path = Path(db_path or config_manager.load_settings().db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        # create a new connection with row access by column name
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def close(self, conn: Optional[sqlite3.Connection]) -> None:
        # close the provided connection if it exists
        if conn is not None:
            conn.close()

    def execute(self, sql: str, params: Tuple[Any, ...] = ()) -> Optional[int]:
        # execute INSERT/UPDATE/DELETE statements
        conn = self.connect()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor.lastrowid
        except sqlite3.Error as exc:
            logger.error("Database execute error: %s", exc)
            return None
        finally:
            self.close(conn)

    def execute_many(self, sql: str, rows: Iterable[Tuple[Any, ...]]) -> bool:
        # run one statement for many rows inside a single transaction
        conn = self.connect()
        try:
            conn.executemany(sql, list(rows))
            conn.commit()
            return True
        except sqlite3.Error as exc:
            conn.rollback()
            logger.error("Database execute_many error: %s", exc)
            return False
        finally:
            self.close(conn)

    def update(self, sql: str, params: Tuple[Any, ...] = ()) -> bool:
        # UPDATE/DELETE statements where the caller needs to know the write happened
        conn = self.connect()
        try:
            conn.execute(sql, params)
            conn.commit()
            return True
        except sqlite3.Error as exc:
            logger.error("Database update error: %s", exc)
            return False
        finally:
            self.close(conn)

    def fetch_one(self, sql: str, params: Tuple[Any, ...] = ()) -> Optional[dict]:
        # return the first row as a dict or None
        conn = self.connect()
        try:
            cursor = conn.execute(sql, params)
            row = cursor.fetchone()
            return dict(row) if row else None
        except sqlite3.Error as exc:
            logger.error("Database fetch_one error: %s", exc)
            return None
        finally:
            self.close(conn)

    def fetch_all(self, sql: str, params: Tuple[Any, ...] = ()) -> List[dict]:
        # return all rows as dictionaries
        conn = self.connect()
        try:
            cursor = conn.execute(sql, params)
            rows = cursor.fetchall()
            return [dict(row) for row in rows]
        except sqlite3.Error as exc:
            logger.error("Database fetch_all error: %s", exc)
            return []
        finally:
            self.close(conn)

    def log_activity(
        self,
        user_id: int,
        action: str,
        details: Optional[str] = None,
        child_id: Optional[int] = None,
        timestamp: Optional[int] = None,
    ) -> None:
        # audit trail row for account, child and password events
        self.execute(
            "INSERT INTO activity_log (user_id, child_id, action, details, timestamp) VALUES (?, ?, ?, ?, ?)",
            (user_id, child_id, action, details, timestamp if timestamp is not None else now_ms()),
        )

    def create_tables(self) -> None:
        # create the required tables when they do not already exist
        table_statements: Iterable[str] = (
            """
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT UNIQUE NOT NULL,
                password_hash TEXT NOT NULL,
                password_salt TEXT,
                name TEXT NOT NULL,
                phone TEXT,
                api_key TEXT UNIQUE NOT NULL,
                email_verified INTEGER NOT NULL DEFAULT 0,
                email_enabled INTEGER NOT NULL DEFAULT 1,
                sms_enabled INTEGER NOT NULL DEFAULT 0,
                email_threshold INTEGER NOT NULL DEFAULT 7,
                sms_threshold INTEGER NOT NULL DEFAULT 9,
                daily_digest INTEGER NOT NULL DEFAULT 1,
                created_at INTEGER NOT NULL
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS children (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                age INTEGER,
                avatar TEXT,
                extension_id TEXT UNIQUE NOT NULL,
                extension_version TEXT NOT NULL,
                last_sync_at INTEGER NOT NULL,
                monitoring_mode TEXT NOT NULL,
                monitoring_enabled INTEGER NOT NULL DEFAULT 1,
                platforms TEXT NOT NULL DEFAULT '[]',
                created_at INTEGER NOT NULL
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS incidents (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                child_id INTEGER,
                user_id INTEGER NOT NULL,
                timestamp INTEGER NOT NULL,
                platform TEXT NOT NULL,
                incident_type TEXT NOT NULL,
                threat_level INTEGER NOT NULL,
                severity TEXT NOT NULL,
                category TEXT NOT NULL,
                message_text TEXT,
                image_description TEXT,
                conversation_context TEXT,
                ai_analysis TEXT,
                action_taken TEXT NOT NULL,
                child_warning_shown INTEGER NOT NULL DEFAULT 0,
                viewed INTEGER NOT NULL DEFAULT 0,
                viewed_at INTEGER,
                acknowledged INTEGER NOT NULL DEFAULT 0,
                acknowledged_at INTEGER,
                notes TEXT,
                exported INTEGER NOT NULL DEFAULT 0,
                email_sent INTEGER NOT NULL DEFAULT 0,
                sms_sent INTEGER NOT NULL DEFAULT 0
            )
            """,
            "CREATE INDEX IF NOT EXISTS idx_incidents_user ON incidents (user_id, timestamp)",
            "CREATE INDEX IF NOT EXISTS idx_incidents_child ON incidents (child_id, timestamp)",
            """
            CREATE TABLE IF NOT EXISTS exports (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                child_id INTEGER,
                export_type TEXT NOT NULL,
                purpose TEXT NOT NULL,
                start_date INTEGER NOT NULL,
                end_date INTEGER NOT NULL,
                incident_ids TEXT NOT NULL,
                incident_count INTEGER NOT NULL,
                file_url TEXT,
                file_size INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL,
                expires_at INTEGER,
                download_count INTEGER NOT NULL DEFAULT 0
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS activity_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                child_id INTEGER,
                action TEXT NOT NULL,
                details TEXT,
                ip_address TEXT,
                user_agent TEXT,
                timestamp INTEGER NOT NULL
            )
            """,
        )

        for statement in table_statements:
            self.execute(statement)
