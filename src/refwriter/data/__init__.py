"""Write pipeline: row mapping, statements, integrity, children, transactions."""

from refwriter.data.children import INSERT_BATCH_SIZE, ChildCollectionSynchronizer
from refwriter.data.integrity import IntegrityEngine
from refwriter.data.mapper import map_row
from refwriter.data.statements import BuiltStatement, build_statement
from refwriter.data.transaction import InvalidStateTransition, WriteTransaction

__all__ = [
    "INSERT_BATCH_SIZE",
    "BuiltStatement",
    "ChildCollectionSynchronizer",
    "IntegrityEngine",
    "InvalidStateTransition",
    "WriteTransaction",
    "build_statement",
    "map_row",
]
