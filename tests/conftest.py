"""Shared test fixtures for RefWriter."""

import os
from collections.abc import Callable, Generator
from typing import Any

import pytest
from sqlalchemy import text

from refwriter import RefWriter


def _psycopg_available() -> bool:
    """Check if psycopg is installed."""
    try:
        import psycopg  # noqa: F401

        return True
    except ImportError:
        return False


def _postgresql_connectable(url: str) -> bool:
    """Check if we can connect to PostgreSQL."""
    if not _psycopg_available():
        return False
    try:
        from refwriter.core.connection import DatabaseConnection

        conn = DatabaseConnection(url)
        result = conn.test_connection()
        conn.close()
        return result
    except Exception:
        return False


# Skip marker for tests requiring PostgreSQL
requires_postgresql = pytest.mark.skipif(
    not _psycopg_available(),
    reason="psycopg not installed (install with: pip install refwriter[postgresql])",
)


@pytest.fixture
def postgresql_url() -> str:
    """Get PostgreSQL URL from environment or use default.

    Tests using this fixture should also use @requires_postgresql marker.
    """
    url = os.environ.get("TEST_DATABASE_URL")
    if not url:
        # Default to local PostgreSQL
        url = "postgresql://localhost/refwriter_test"

    # Skip if psycopg not available
    if not _psycopg_available():
        pytest.skip("psycopg not installed")

    # Skip if can't connect (no PostgreSQL server)
    if not _postgresql_connectable(url):
        pytest.skip(f"Cannot connect to PostgreSQL at {url}")

    return url


@pytest.fixture
def writer() -> Generator[RefWriter, None, None]:
    """RefWriter over SQLite in-memory with the GTFS tables created."""
    w = RefWriter("sqlite:///:memory:")
    w.create_tables()
    yield w
    w.close()


@pytest.fixture
def pg_writer(postgresql_url: str) -> Generator[RefWriter, None, None]:
    """RefWriter over PostgreSQL, isolated in its own namespace.

    The postgresql_url fixture handles skipping when PostgreSQL isn't available.
    """
    namespace = "refwriter_test"
    w = RefWriter(postgresql_url, namespace=namespace)
    w.create_tables()
    yield w
    with w.connection.engine.begin() as conn:
        conn.execute(text(f'DROP SCHEMA IF EXISTS "{namespace}" CASCADE'))
    w.close()


@pytest.fixture
def read_rows() -> Callable[..., list[dict[str, Any]]]:
    """Read every row of a table straight from the database, ordered by id."""

    def _read(w: RefWriter, table_name: str) -> list[dict[str, Any]]:
        table = f'"{w.namespace}"."{table_name}"' if w.namespace else f'"{table_name}"'
        with w.connection.engine.connect() as conn:
            result = conn.execute(text(f"SELECT * FROM {table} ORDER BY id"))
            return [dict(row._mapping) for row in result]

    return _read


# Re-export for use in test files
__all__ = ["requires_postgresql"]
