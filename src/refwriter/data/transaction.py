"""One write request: one connection, one transaction, one outcome."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import IntegrityError

from refwriter.core.types import WriteState
from refwriter.exceptions import RefWriterError, StorageError, UniquenessError

if TYPE_CHECKING:
    from sqlalchemy import Connection, RootTransaction

    from refwriter.core.connection import DatabaseConnection
    from refwriter.schema.models import TableSchema

logger = logging.getLogger(__name__)


_NEXT_STATE: dict[WriteState, WriteState] = {
    WriteState.START: WriteState.INTEGRITY_CHECKED,
    WriteState.INTEGRITY_CHECKED: WriteState.ROW_WRITTEN,
    WriteState.ROW_WRITTEN: WriteState.CHILDREN_SYNCED,
    WriteState.CHILDREN_SYNCED: WriteState.COMMITTED,
}


class InvalidStateTransition(RuntimeError):
    """A write step ran out of order."""

    pass


class WriteTransaction:
    """Context manager owning the connection and transaction of one write.

    Steps report progress with ``advance``. Leaving the block normally
    commits; leaving it with an exception rolls back. Either way the
    connection is closed. Database exceptions are re-raised as
    ``RefWriterError`` subclasses.

    Example:
        with WriteTransaction(connection, table, "update") as txn:
            engine.ensure_integrity(txn.conn, table, payload, row_id)
            txn.advance(WriteState.INTEGRITY_CHECKED)
            ...
    """

    def __init__(self, connection: DatabaseConnection, table: TableSchema, operation: str) -> None:
        self._connection = connection
        self._table = table
        self._operation = operation
        self._conn: Connection | None = None
        self._transaction: RootTransaction | None = None
        self.state = WriteState.START
        self.key_value: Any = None

    @property
    def conn(self) -> Connection:
        if self._conn is None:
            raise InvalidStateTransition("Write transaction has not been entered")
        return self._conn

    def advance(self, state: WriteState) -> None:
        """Move to the next state.

        Raises:
            InvalidStateTransition: If ``state`` is not the successor of the current state
        """
        if _NEXT_STATE.get(self.state) != state or state.is_terminal:
            raise InvalidStateTransition(
                f"Cannot move {self._operation} of {self._table.name} from {self.state} to {state}"
            )
        logger.debug(f"{self._operation} {self._table.name}: {self.state} -> {state}")
        self.state = state

    def __enter__(self) -> WriteTransaction:
        self._conn = self._connection.connect()
        try:
            self._transaction = self._conn.begin()
        except Exception as e:
            self._conn.close()
            self._conn = None
            raise StorageError(f"Failed to begin transaction: {e}") from e
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        error: BaseException | None = exc_val
        try:
            if error is None:
                try:
                    if (
                        self._transaction is None
                        or _NEXT_STATE.get(self.state) != WriteState.COMMITTED
                    ):
                        raise InvalidStateTransition(
                            f"Cannot commit {self._operation} of {self._table.name} "
                            f"in state {self.state}"
                        )
                    self._transaction.commit()
                    self.state = WriteState.COMMITTED
                    logger.info(f"Committed {self._operation} of {self._table.name}")
                except Exception as e:
                    error = e
                    self._rollback()
            else:
                self._rollback()
        finally:
            self.conn.close()
            self._conn = None

        if error is None:
            return False
        translated = self._translate(error)
        if translated is error:
            if error is exc_val:
                return False
            raise error
        raise translated from error

    def _rollback(self) -> None:
        if self._transaction is not None and self._transaction.is_active:
            self._transaction.rollback()
        self.state = WriteState.ROLLED_BACK
        logger.info(f"Rolled back {self._operation} of {self._table.name}")

    def _translate(self, error: BaseException) -> BaseException:
        if isinstance(error, (RefWriterError, InvalidStateTransition)):
            return error
        if not isinstance(error, Exception):
            return error
        if isinstance(error, IntegrityError):
            # The only constraint declared on data tables is the unique key index
            return UniquenessError(
                self._table.name,
                self._table.key_field,
                "" if self.key_value is None else str(self.key_value),
            )
        logger.error(f"Error during {self._operation} of {self._table.name}: {error}")
        return StorageError(
            f"Failed to {self._operation} {self._table.name}: {error}",
            {"table_name": self._table.name, "operation": self._operation},
        )
