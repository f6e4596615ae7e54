"""
Database connection and query module.

Provides a clean interface for record store operations with support
for both PostgreSQL and SQLite backends.
"""

import logging
import os
import re
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import asyncpg
import aiosqlite

from config import config
from models.notification import RegistrationStatus

logger = logging.getLogger(__name__)


class Database:
    """
    Async database connection manager.

    Supports PostgreSQL (production) and SQLite (development and tests).
    PostgreSQL connections authenticate with the service key, a privileged
    credential reserved for this handler.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        service_key: Optional[str] = None
    ):
        """
        Initialize database manager.

        Args:
            database_url: Database connection URL. Uses config if not provided.
            service_key: Password for the privileged role. Uses config if not provided.
        """
        self.database_url = database_url or config.database.url
        self.service_key = service_key or config.database.service_key
        self._pool = None
        self._sqlite_conn = None
        self._is_postgres = self.database_url.startswith('postgresql')

    async def connect(self) -> None:
        """Establish database connection(s)."""
        if self._is_postgres:
            logger.info("Connecting to PostgreSQL database...")
            self._pool = await asyncpg.create_pool(
                self.database_url,
                password=self.service_key,
                min_size=2,
                max_size=10,
                command_timeout=60
            )
        else:
            # SQLite for development
            db_path = self.database_url.replace('sqlite:///', '')
            logger.info(f"Connecting to SQLite database: {db_path}")
            self._sqlite_conn = await aiosqlite.connect(db_path)
            self._sqlite_conn.row_factory = aiosqlite.Row

        logger.info("Database connection established")

    async def disconnect(self) -> None:
        """Close database connection(s)."""
        if self._is_postgres and self._pool:
            await self._pool.close()
            self._pool = None
        elif self._sqlite_conn:
            await self._sqlite_conn.close()
            self._sqlite_conn = None

        logger.info("Database connection closed")

    async def execute(self, query: str, *args) -> int:
        """
        Execute a query without returning results.

        Args:
            query: SQL query to execute
            *args: Query parameters

        Returns:
            Number of rows affected
        """
        if self._is_postgres:
            async with self._pool.acquire() as conn:
                status = await conn.execute(query, *args)
            # asyncpg returns the command tag, e.g. "UPDATE 1"
            try:
                return int(status.split()[-1])
            except (ValueError, IndexError):
                return 0
        else:
            cursor = await self._sqlite_conn.execute(self._convert_params(query), args)
            await self._sqlite_conn.commit()
            return cursor.rowcount

    async def fetch_one(self, query: str, *args) -> Optional[Dict[str, Any]]:
        """
        Execute a query and fetch one row.

        Args:
            query: SQL query to execute
            *args: Query parameters

        Returns:
            Row as dictionary or None if no results
        """
        if self._is_postgres:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(query, *args)
                return dict(row) if row else None
        else:
            # Convert $1, $2 style params to ? for SQLite
            sqlite_query = self._convert_params(query)
            cursor = await self._sqlite_conn.execute(sqlite_query, args)
            row = await cursor.fetchone()
            if row:
                columns = [d[0] for d in cursor.description]
                return dict(zip(columns, row))
            return None

    async def fetch_all(self, query: str, *args) -> List[Dict[str, Any]]:
        """
        Execute a query and fetch all rows.

        Args:
            query: SQL query to execute
            *args: Query parameters

        Returns:
            List of rows as dictionaries
        """
        if self._is_postgres:
            async with self._pool.acquire() as conn:
                rows = await conn.fetch(query, *args)
                return [dict(row) for row in rows]
        else:
            sqlite_query = self._convert_params(query)
            cursor = await self._sqlite_conn.execute(sqlite_query, args)
            rows = await cursor.fetchall()
            if rows:
                columns = [d[0] for d in cursor.description]
                return [dict(zip(columns, row)) for row in rows]
            return []

    def _convert_params(self, query: str) -> str:
        """Convert PostgreSQL $1, $2 style params to SQLite ?1, ?2 style."""
        # Numbered form keeps repeated parameters bound to the same value
        return re.sub(r'\$(\d+)', r'?\1', query)

    async def init_schema(self) -> None:
        """Initialize database schema from schema.sql file."""
        schema_path = os.path.join(os.path.dirname(__file__), 'schema.sql')

        with open(schema_path, 'r') as f:
            schema = f.read()

        # Drop comment lines, then split by semicolons
        schema = '\n'.join(
            line for line in schema.splitlines()
            if not line.strip().startswith('--')
        )
        statements = [s.strip() for s in schema.split(';') if s.strip()]

        for statement in statements:
            if self._is_postgres:
                async with self._pool.acquire() as conn:
                    await conn.execute(statement)
            else:
                await self._sqlite_conn.execute(statement)

        if not self._is_postgres:
            await self._sqlite_conn.commit()

        logger.info("Database schema initialized")

    # -------------------------------------------------------------------------
    # Registration Operations
    # -------------------------------------------------------------------------

    async def get_registration(self, registration_id: str) -> Optional[Dict[str, Any]]:
        """Get registration by ID."""
        return await self.fetch_one(
            "SELECT * FROM teams WHERE id = $1",
            registration_id
        )

    async def get_all_registrations(self) -> List[Dict[str, Any]]:
        """Get all registrations, oldest first."""
        return await self.fetch_all(
            "SELECT * FROM teams ORDER BY created_at, id"
        )

    async def create_registration(
        self,
        team_name: str,
        manager_name: Optional[str] = None,
        manager_email: Optional[str] = None,
        manager_phone: Optional[str] = None,
        num_players: Optional[int] = None,
        home_ground: Optional[str] = None,
        notes: Optional[str] = None,
        registration_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Insert a new registration awaiting payment."""
        registration_id = registration_id or str(uuid.uuid4())
        now = datetime.utcnow()

        await self.execute(
            """
            INSERT INTO teams (id, team_name, manager_name, manager_email, manager_phone,
                               num_players, home_ground, notes, status, created_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
            """,
            registration_id, team_name, manager_name, manager_email, manager_phone,
            num_players, home_ground, notes, RegistrationStatus.PENDING_PAYMENT.value,
            now if self._is_postgres else now.isoformat()
        )

        return await self.get_registration(registration_id)

    async def confirm_registration(self, registration_id: str, pf_payment_id: str) -> bool:
        """
        Mark a registration as paid.

        A single conditional UPDATE: it matches when the registration is not
        yet confirmed, or is confirmed under the same pf_payment_id, so a
        redelivered ITN rewrites identical values.

        Returns:
            True if a row matched, False if the id is unknown or the
            registration was confirmed by a different transaction
        """
        updated = await self.execute(
            """
            UPDATE teams
            SET status = $1, pf_payment_id = $2
            WHERE id = $3
              AND (status <> $1 OR pf_payment_id IS NULL OR pf_payment_id = $2)
            """,
            RegistrationStatus.CONFIRMED.value, pf_payment_id, registration_id
        )
        return updated > 0


# Global database instance
_db: Optional[Database] = None


async def get_db() -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database()
        await _db.connect()
    return _db


async def close_db() -> None:
    """Close the global database connection."""
    global _db
    if _db is not None:
        await _db.disconnect()
        _db = None
