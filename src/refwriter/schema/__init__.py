"""Schema catalog for RefWriter."""

from refwriter.schema.catalog import SchemaCatalog
from refwriter.schema.ddl import TableManager
from refwriter.schema.gtfs import gtfs_catalog
from refwriter.schema.models import FieldSchema, TableSchema

__all__ = [
    "SchemaCatalog",
    "TableManager",
    "FieldSchema",
    "TableSchema",
    "gtfs_catalog",
]
