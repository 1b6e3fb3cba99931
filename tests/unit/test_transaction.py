"""Tests for the write transaction state machine."""

import pytest
from sqlalchemy import text

from refwriter.core.types import WriteState
from refwriter.data.transaction import InvalidStateTransition, WriteTransaction
from refwriter.exceptions import StorageError, UniquenessError, ValidationError

ALL_STEPS = [WriteState.INTEGRITY_CHECKED, WriteState.ROW_WRITTEN, WriteState.CHILDREN_SYNCED]


def _route_count(writer):
    with writer.connection.engine.connect() as conn:
        return conn.execute(text("SELECT COUNT(*) FROM routes")).scalar()


@pytest.fixture
def routes(writer):
    return writer.catalog.table("routes")


class TestWriteTransaction:
    def test_commit_after_all_steps(self, writer, routes):
        txn = WriteTransaction(writer.connection, routes, "create")
        with txn:
            txn.conn.execute(text("INSERT INTO routes (route_id) VALUES ('R1')"))
            for step in ALL_STEPS:
                txn.advance(step)
        assert txn.state == WriteState.COMMITTED
        assert _route_count(writer) == 1

    def test_rollback_on_error(self, writer, routes):
        txn = WriteTransaction(writer.connection, routes, "create")
        with pytest.raises(ValidationError):
            with txn:
                txn.conn.execute(text("INSERT INTO routes (route_id) VALUES ('R1')"))
                txn.advance(WriteState.INTEGRITY_CHECKED)
                raise ValidationError("bad child", table_name="routes")
        assert txn.state == WriteState.ROLLED_BACK
        assert _route_count(writer) == 0

    def test_steps_must_run_in_order(self, writer, routes):
        txn = WriteTransaction(writer.connection, routes, "create")
        with pytest.raises(InvalidStateTransition):
            with txn:
                txn.advance(WriteState.ROW_WRITTEN)
        assert txn.state == WriteState.ROLLED_BACK

    def test_cannot_advance_to_terminal_state(self, writer, routes):
        txn = WriteTransaction(writer.connection, routes, "create")
        with pytest.raises(InvalidStateTransition):
            with txn:
                for step in ALL_STEPS:
                    txn.advance(step)
                txn.advance(WriteState.COMMITTED)

    def test_incomplete_write_is_not_committed(self, writer, routes):
        txn = WriteTransaction(writer.connection, routes, "create")
        with pytest.raises(InvalidStateTransition):
            with txn:
                txn.conn.execute(text("INSERT INTO routes (route_id) VALUES ('R1')"))
                txn.advance(WriteState.INTEGRITY_CHECKED)
        assert txn.state == WriteState.ROLLED_BACK
        assert _route_count(writer) == 0

    def test_conn_requires_enter(self, writer, routes):
        txn = WriteTransaction(writer.connection, routes, "create")
        with pytest.raises(InvalidStateTransition):
            _ = txn.conn

    def test_unique_index_violation_becomes_uniqueness_error(self, writer, routes):
        txn = WriteTransaction(writer.connection, routes, "create")
        txn.key_value = "R1"
        with pytest.raises(UniquenessError) as exc_info:
            with txn:
                txn.conn.execute(text("INSERT INTO routes (route_id) VALUES ('R1')"))
                txn.conn.execute(text("INSERT INTO routes (route_id) VALUES ('R1')"))
        assert exc_info.value.key_value == "R1"
        assert exc_info.value.key_field == "route_id"
        assert _route_count(writer) == 0

    def test_database_errors_become_storage_errors(self, writer, routes):
        txn = WriteTransaction(writer.connection, routes, "update")
        with pytest.raises(StorageError) as exc_info:
            with txn:
                txn.conn.execute(text("SELECT no_such_column FROM routes"))
        assert exc_info.value.context["operation"] == "update"
        assert txn.state == WriteState.ROLLED_BACK
