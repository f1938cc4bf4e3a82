# database.py
"""
Database Module - SQLite persistence layer
Holds the persisted auction snapshot and the Discord channel configuration
"""

import sqlite3
from typing import Dict, Optional
from contextlib import contextmanager


class Database:
    """SQLite database manager for snapshot persistence"""

    def __init__(self, db_path: str = "auction.db"):
        self.db_path = db_path
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory and timeout"""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self):
        """Context manager for database transactions"""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database tables"""
        with self._transaction() as conn:
            cursor = conn.cursor()

            # Enable WAL mode so displays can read while the controller writes
            cursor.execute("PRAGMA journal_mode=WAL")

            # One row per snapshot slot; the auction uses a single fixed key
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS snapshots (
                    snapshot_key TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """
            )

            # channel_type: 'controller', 'display'
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS channel_config (
                    guild_id TEXT NOT NULL,
                    channel_type TEXT NOT NULL,
                    channel_id TEXT NOT NULL,
                    message_id TEXT,
                    configured_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (guild_id, channel_type)
                )
            """
            )

    # ==================== SNAPSHOT OPERATIONS ====================

    def save_snapshot(self, key: str, payload: str):
        """Replace the snapshot stored under key"""
        with self._transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR REPLACE INTO snapshots (snapshot_key, payload, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                """,
                (key, payload),
            )

    def get_snapshot(self, key: str) -> Optional[str]:
        with self._transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT payload FROM snapshots WHERE snapshot_key = ?", (key,)
            )
            row = cursor.fetchone()
            return row["payload"] if row else None

    def clear_snapshot(self, key: str) -> bool:
        """Remove the snapshot. Returns True if one existed"""
        with self._transaction() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM snapshots WHERE snapshot_key = ?", (key,))
            return cursor.rowcount > 0

    # ==================== CHANNEL CONFIGURATION OPERATIONS ====================

    def set_channel_config(
        self,
        guild_id: str,
        channel_type: str,
        channel_id: str,
        message_id: Optional[str] = None,
    ) -> bool:
        """Set a channel configuration for a specific channel type.

        Args:
            guild_id: The Discord guild ID
            channel_type: One of 'controller', 'display'
            channel_id: The Discord channel ID
            message_id: Live board message (display channel only)

        Returns:
            True if successful
        """
        with self._transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR REPLACE INTO channel_config (guild_id, channel_type, channel_id, message_id)
                VALUES (?, ?, ?, ?)
                """,
                (guild_id, channel_type, channel_id, message_id),
            )
            return True

    def set_channel_message(
        self, guild_id: str, channel_type: str, message_id: Optional[str]
    ) -> bool:
        with self._transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE channel_config SET message_id = ? WHERE guild_id = ? AND channel_type = ?",
                (message_id, guild_id, channel_type),
            )
            return cursor.rowcount > 0

    def get_channel_config(self, guild_id: str, channel_type: str) -> Optional[str]:
        """Get the configured channel ID for a specific channel type."""
        with self._transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT channel_id FROM channel_config WHERE guild_id = ? AND channel_type = ?",
                (guild_id, channel_type),
            )
            row = cursor.fetchone()
            return row["channel_id"] if row else None

    def get_channel_message(self, guild_id: str, channel_type: str) -> Optional[str]:
        with self._transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT message_id FROM channel_config WHERE guild_id = ? AND channel_type = ?",
                (guild_id, channel_type),
            )
            row = cursor.fetchone()
            return row["message_id"] if row else None

    def get_all_channel_configs(self, guild_id: str) -> Dict[str, str]:
        """Get all channel configurations for a guild.

        Returns:
            Dict mapping channel_type to channel_id
        """
        with self._transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT channel_type, channel_id FROM channel_config WHERE guild_id = ?",
                (guild_id,),
            )
            return {row["channel_type"]: row["channel_id"] for row in cursor.fetchall()}

    def get_configs_by_type(self, channel_type: str) -> Dict[str, Dict[str, Optional[str]]]:
        """All guilds' configuration for one channel type, keyed by guild id"""
        with self._transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT guild_id, channel_id, message_id FROM channel_config WHERE channel_type = ?",
                (channel_type,),
            )
            return {
                row["guild_id"]: {
                    "channel_id": row["channel_id"],
                    "message_id": row["message_id"],
                }
                for row in cursor.fetchall()
            }

    def clear_channel_config(self, guild_id: str, channel_type: str) -> bool:
        """Remove a channel configuration."""
        with self._transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM channel_config WHERE guild_id = ? AND channel_type = ?",
                (guild_id, channel_type),
            )
            return cursor.rowcount > 0

    def clear_all_channel_configs(self, guild_id: str) -> int:
        """Remove every channel configuration for a guild.

        Returns:
            Number of configs removed
        """
        with self._transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM channel_config WHERE guild_id = ?",
                (guild_id,),
            )
            return cursor.rowcount
