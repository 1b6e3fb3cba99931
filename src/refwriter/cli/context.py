"""CLI context management for database connections and shared state."""

import os
from dataclasses import dataclass, field

from refwriter import RefWriter, SchemaCatalog

DEFAULT_DATABASE_URL = "sqlite:///./refwriter.db"


def get_database_url(url: str | None) -> str:
    """Resolve database URL from CLI arg, environment variable, or default.

    Priority:
    1. Explicit URL argument
    2. REFWRITER_URL environment variable
    3. Default: sqlite:///./refwriter.db
    """
    if url:
        return url
    if env_url := os.getenv("REFWRITER_URL"):
        return env_url
    return DEFAULT_DATABASE_URL


def get_catalog_path(path: str | None) -> str | None:
    """Resolve catalog file from CLI arg or REFWRITER_CATALOG.

    None means the built-in GTFS catalog.
    """
    return path or os.getenv("REFWRITER_CATALOG") or None


@dataclass
class CLIContext:
    """Shared context for CLI commands.

    Manages the writer lifecycle and output preferences.
    """

    database_url: str
    echo: bool
    json_output: bool
    catalog_path: str | None = None
    namespace: str | None = None
    _writer: RefWriter | None = field(default=None, init=False, repr=False)

    def get_writer(self) -> RefWriter:
        """Get or create the writer (lazy initialization).

        Raises:
            FileNotFoundError: If the catalog file doesn't exist
        """
        if self._writer is None:
            catalog = None
            if self.catalog_path:
                catalog = SchemaCatalog.from_json_file(self.catalog_path)
            self._writer = RefWriter(
                self.database_url,
                catalog=catalog,
                namespace=self.namespace,
                echo=self.echo,
            )
        return self._writer

    def close(self) -> None:
        """Close database connection if open."""
        if self._writer is not None:
            self._writer.close()
            self._writer = None
