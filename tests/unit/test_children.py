"""Tests for child collection replacement."""

import pytest
from sqlalchemy import text

from refwriter.data.children import ChildCollectionSynchronizer
from refwriter.exceptions import StorageError, ValidationError


def _stop_times(conn, trip_id):
    result = conn.execute(
        text('SELECT * FROM "stop_times" WHERE trip_id = :t ORDER BY stop_sequence'),
        {"t": trip_id},
    )
    return [dict(r._mapping) for r in result]


@pytest.fixture
def trip(writer):
    """Insert a bare trip row and return its id."""
    with writer.connection.engine.begin() as conn:
        return conn.execute(
            text("INSERT INTO trips (trip_id) VALUES ('T1') RETURNING id")
        ).scalar_one()


def _sync(writer, batch_size=500):
    return ChildCollectionSynchronizer(
        writer.catalog, writer._integrity, batch_size=batch_size
    )


class TestReplaceChildren:
    def test_insert_injects_parent_key(self, writer, trip):
        trips = writer.catalog.table("trips")
        stop_times = writer.catalog.table("stop_times")
        entities = [{"stop_id": "S1", "stop_sequence": 1}, {"stop_id": "S2", "stop_sequence": 2}]
        with writer.connection.engine.begin() as conn:
            inserted = _sync(writer).replace_children(
                conn, trips, trip, stop_times, entities, is_creating=True
            )
            rows = _stop_times(conn, "T1")
        assert inserted == 2
        assert [r["stop_id"] for r in rows] == ["S1", "S2"]
        assert all(r["trip_id"] == "T1" for r in rows)

    def test_replaces_existing_children(self, writer, trip):
        trips = writer.catalog.table("trips")
        stop_times = writer.catalog.table("stop_times")
        sync = _sync(writer)
        with writer.connection.engine.begin() as conn:
            first = [{"stop_sequence": n} for n in range(5)]
            sync.replace_children(conn, trips, trip, stop_times, first, is_creating=True)
            second = [{"stop_sequence": 9}, {"stop_sequence": 8}]
            sync.replace_children(conn, trips, trip, stop_times, second, is_creating=False)
            rows = _stop_times(conn, "T1")
        assert [r["stop_sequence"] for r in rows] == [8, 9]

    def test_empty_list_wipes_children(self, writer, trip):
        trips = writer.catalog.table("trips")
        stop_times = writer.catalog.table("stop_times")
        sync = _sync(writer)
        with writer.connection.engine.begin() as conn:
            sync.replace_children(
                conn, trips, trip, stop_times, [{"stop_sequence": 1}], is_creating=True
            )
            assert sync.replace_children(conn, trips, trip, stop_times, [], False) == 0
            assert _stop_times(conn, "T1") == []

    def test_batches_respect_size(self, writer, trip, monkeypatch):
        trips = writer.catalog.table("trips")
        stop_times = writer.catalog.table("stop_times")
        sync = _sync(writer, batch_size=2)
        sizes = []
        original = sync._execute_batch

        def record(conn, statement, batch, done, total):
            sizes.append(len(batch))
            return original(conn, statement, batch, done, total)

        monkeypatch.setattr(sync, "_execute_batch", record)
        entities = [{"stop_sequence": n} for n in range(5)]
        with writer.connection.engine.begin() as conn:
            assert sync.replace_children(conn, trips, trip, stop_times, entities, True) == 5
            assert len(_stop_times(conn, "T1")) == 5
        assert sizes == [2, 2, 1]

    def test_column_set_change_starts_new_batch(self, writer, trip):
        trips = writer.catalog.table("trips")
        stop_times = writer.catalog.table("stop_times")
        entities = [
            {"stop_sequence": 1, "arrival_time": "08:00:00"},
            {"stop_sequence": 2},
            {"stop_sequence": 3, "arrival_time": 29100},
        ]
        with writer.connection.engine.begin() as conn:
            _sync(writer).replace_children(conn, trips, trip, stop_times, entities, True)
            rows = _stop_times(conn, "T1")
        assert [r["arrival_time"] for r in rows] == [28800, None, 29100]

    def test_entity_must_be_object(self, writer, trip):
        trips = writer.catalog.table("trips")
        stop_times = writer.catalog.table("stop_times")
        with writer.connection.engine.begin() as conn:
            with pytest.raises(ValidationError, match=r"stop_times\[0\]"):
                _sync(writer).replace_children(conn, trips, trip, stop_times, ["S1"], True)

    def test_foreign_parent_key_rejected(self, writer, trip):
        trips = writer.catalog.table("trips")
        stop_times = writer.catalog.table("stop_times")
        with writer.connection.engine.begin() as conn:
            with pytest.raises(ValidationError, match="belongs to"):
                _sync(writer).replace_children(
                    conn, trips, trip, stop_times, [{"trip_id": "T9"}], True
                )

    def test_bad_child_value(self, writer, trip):
        trips = writer.catalog.table("trips")
        stop_times = writer.catalog.table("stop_times")
        with writer.connection.engine.begin() as conn:
            with pytest.raises(StorageError):
                _sync(writer).replace_children(
                    conn, trips, trip, stop_times, [{"arrival_time": "late"}], True
                )

    def test_link_through_non_key_field(self, writer):
        """Shapes hang off a pattern through its shape_id."""
        patterns = writer.catalog.table("patterns")
        shapes = writer.catalog.table("shapes")
        with writer.connection.engine.begin() as conn:
            pattern = conn.execute(
                text(
                    "INSERT INTO patterns (pattern_id, shape_id) VALUES ('P1', 'SH1') RETURNING id"
                )
            ).scalar_one()
            points = [{"shape_pt_sequence": n, "shape_pt_lat": 47.0 + n} for n in range(3)]
            _sync(writer).replace_children(conn, patterns, pattern, shapes, points, True)
            count = conn.execute(
                text("SELECT COUNT(*) FROM shapes WHERE shape_id = 'SH1'")
            ).scalar()
        assert count == 3

    def test_previous_link_value_children_removed(self, writer):
        patterns = writer.catalog.table("patterns")
        shapes = writer.catalog.table("shapes")
        sync = _sync(writer)
        with writer.connection.engine.begin() as conn:
            pattern = conn.execute(
                text(
                    "INSERT INTO patterns (pattern_id, shape_id) VALUES ('P1', 'SH1') RETURNING id"
                )
            ).scalar_one()
            sync.replace_children(conn, patterns, pattern, shapes, [{"shape_pt_sequence": 1}], True)
            conn.execute(
                text("UPDATE patterns SET shape_id = 'SH2' WHERE id = :id"), {"id": pattern}
            )
            sync.replace_children(
                conn,
                patterns,
                pattern,
                shapes,
                [{"shape_pt_sequence": 1}, {"shape_pt_sequence": 2}],
                False,
                previous_link_value="SH1",
            )
            result = conn.execute(text("SELECT shape_id FROM shapes ORDER BY id"))
            shape_ids = [row[0] for row in result]
        assert shape_ids == ["SH2", "SH2"]

    def test_parent_without_link_value(self, writer):
        patterns = writer.catalog.table("patterns")
        shapes = writer.catalog.table("shapes")
        with writer.connection.engine.begin() as conn:
            pattern = conn.execute(
                text("INSERT INTO patterns (pattern_id) VALUES ('P1') RETURNING id")
            ).scalar_one()
            sync = _sync(writer)
            assert sync.replace_children(conn, patterns, pattern, shapes, [], True) == 0
            with pytest.raises(ValidationError, match="has no shape_id"):
                sync.replace_children(
                    conn, patterns, pattern, shapes, [{"shape_pt_sequence": 1}], True
                )

    def test_batch_size_must_be_positive(self, writer):
        with pytest.raises(ValueError):
            _sync(writer, batch_size=0)
