# backend/shift_scheduler/database/migrations.py
"""
Database schema management.

Schema changes are owned by Alembic (``backend/alembic``). The API and the
worker both call ``initialize_database()`` at startup, which upgrades the
target database to the latest revision.
"""

import os
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from ..config import settings

BACKEND_ROOT = Path(__file__).parent.parent.parent


class DatabaseInitializationError(Exception):
    """Raised when database initialization fails."""

    pass


class AlembicError(DatabaseInitializationError):
    """Raised when Alembic operations fail."""

    pass


class SchemaManager:
    """Runs Alembic commands against one database."""

    def __init__(self, database_url: Optional[str] = None):
        """
        Args:
            database_url: Database connection URL. Uses settings.database_url if None.
        """
        self.database_url = database_url or settings.database_url

    def _run_alembic(self, *args: str, timeout: int) -> subprocess.CompletedProcess:
        env = dict(os.environ)
        env["DATABASE_URL"] = self.database_url
        return subprocess.run(
            ["alembic", *args],
            cwd=BACKEND_ROOT,
            env=env,
            check=True,
            capture_output=True,
            text=True,
            timeout=timeout,
        )

    def get_current_revision(self) -> Optional[str]:
        """
        Revision the database is currently stamped with.

        Returns:
            Revision id, or None for a database Alembic has never touched

        Raises:
            AlembicError: If the Alembic command fails
        """
        try:
            result = self._run_alembic("current", timeout=30)
        except subprocess.CalledProcessError as e:
            raise AlembicError(f"Alembic current command failed: {e.stderr}") from e
        except subprocess.TimeoutExpired:
            raise AlembicError("Alembic current command timed out") from None

        for line in result.stdout.strip().split("\n"):
            line = line.strip()
            if line and not line.startswith("#"):
                return line.split()[0]
        return None

    def run_migrations(self) -> None:
        """
        Upgrade the database to the latest revision.

        Raises:
            AlembicError: If migration fails
        """
        try:
            logger.info("Running Alembic migrations")
            self._run_alembic("upgrade", "head", timeout=300)
            logger.info("Migrations completed successfully")

        except subprocess.CalledProcessError as e:
            raise AlembicError(f"Migration failed: {e.stderr}") from e
        except subprocess.TimeoutExpired:
            raise AlembicError("Migration timed out after 5 minutes") from None


def initialize_database(database_url: Optional[str] = None) -> Dict[str, Any]:
    """
    Bring the schema up to date.

    Args:
        database_url: Database connection URL. Uses settings if None.

    Returns:
        Dictionary with initialization results

    Raises:
        DatabaseInitializationError: If initialization fails
    """
    schema_manager = SchemaManager(database_url)
    try:
        previous = schema_manager.get_current_revision()
        schema_manager.run_migrations()
        current = schema_manager.get_current_revision()
    except OSError as e:
        # alembic executable missing or not runnable
        raise DatabaseInitializationError(
            f"Unexpected error during initialization: {e}"
        ) from e

    return {
        "method": "fresh_schema" if previous is None else "migrations",
        "success": True,
        "previous_revision": previous,
        "current_revision": current,
        "message": "Database upgraded successfully",
    }
