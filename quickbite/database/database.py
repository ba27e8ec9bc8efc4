import json
import asyncpg
import logging
from pathlib import Path
from typing import Optional
from ..config import Config

class Database:
    """PostgreSQL connection pool"""

    def __init__(self, dsn: Optional[str] = None, logger: Optional[logging.Logger] = None,
                 migrations_path: Optional[Path] = None):
        self.dsn = dsn or Config.DATABASE_URL
        self.migrations_path = migrations_path or Path(__file__).parent / "migrations"
        self.pool: Optional[asyncpg.Pool] = None
        self.logger = logger or logging.getLogger(__name__)

    async def connect(self):
        """Open the pool and apply pending migrations"""
        if not self.dsn:
            raise ValueError("No DATABASE_URL set in environment")
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
                init=self._init_connection
            )

            await self._run_migrations()

            self.logger.info("Database connection established")
        except Exception as e:
            self.logger.error(f"Error connecting to database: {e}")
            raise

    async def close(self):
        if self.pool:
            await self.pool.close()
            self.logger.info("Database connection closed")

    @staticmethod
    async def _init_connection(conn: asyncpg.Connection):
        await conn.set_type_codec(
            'jsonb',
            encoder=json.dumps,
            decoder=json.loads,
            schema='pg_catalog'
        )

    async def _run_migrations(self):
        """Apply *.sql files from ``migrations_path`` in name order, each once"""
        try:
            async with self.pool.acquire() as conn:
                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS migrations (
                        id SERIAL PRIMARY KEY,
                        name VARCHAR(255) NOT NULL UNIQUE,
                        applied_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                applied = {row['name'] for row in await conn.fetch("SELECT name FROM migrations")}

                pending = [f for f in sorted(self.migrations_path.glob("*.sql")) if f.name not in applied]
                for migration_file in pending:
                    async with conn.transaction():
                        await conn.execute(migration_file.read_text())
                        await conn.execute(
                            "INSERT INTO migrations (name) VALUES ($1)",
                            migration_file.name
                        )
                    self.logger.info(f"Migration {migration_file.name} applied")

                if not pending:
                    self.logger.debug("Database schema is up to date")

        except Exception as e:
            self.logger.error(f"Error running migrations: {e}")
            raise
