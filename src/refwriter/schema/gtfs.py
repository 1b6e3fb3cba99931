"""Built-in catalog describing an editable GTFS transit feed.

Tables are listed in dependency order. Relationships follow the GTFS key
fields: a ``route_id`` column on ``trips`` references ``routes`` and so on.
"""

from __future__ import annotations

from refwriter.core.types import FieldType
from refwriter.schema.catalog import SchemaCatalog
from refwriter.schema.models import FieldSchema, TableSchema


def _f(name: str, type: FieldType = FieldType.STRING, ref: bool = False) -> FieldSchema:
    return FieldSchema(name=name, type=type, foreign_reference=ref)


AGENCY = TableSchema(
    name="agency",
    key_field="agency_id",
    fields=[
        _f("agency_id"),
        _f("agency_name"),
        _f("agency_url", FieldType.URL),
        _f("agency_timezone"),
        _f("agency_lang"),
        _f("agency_phone"),
    ],
)

CALENDAR = TableSchema(
    name="calendar",
    key_field="service_id",
    delete_restricted=True,
    fields=[
        _f("service_id"),
        _f("monday", FieldType.INT),
        _f("tuesday", FieldType.INT),
        _f("wednesday", FieldType.INT),
        _f("thursday", FieldType.INT),
        _f("friday", FieldType.INT),
        _f("saturday", FieldType.INT),
        _f("sunday", FieldType.INT),
        _f("start_date", FieldType.DATE),
        _f("end_date", FieldType.DATE),
        _f("description"),
    ],
)

ROUTES = TableSchema(
    name="routes",
    key_field="route_id",
    fields=[
        _f("route_id"),
        _f("agency_id", ref=True),
        _f("route_short_name"),
        _f("route_long_name"),
        _f("route_desc"),
        _f("route_type", FieldType.INT),
        _f("route_url", FieldType.URL),
        _f("route_color", FieldType.COLOR),
        _f("route_text_color", FieldType.COLOR),
    ],
)

STOPS = TableSchema(
    name="stops",
    key_field="stop_id",
    delete_restricted=True,
    fields=[
        _f("stop_id"),
        _f("stop_code"),
        _f("stop_name"),
        _f("stop_desc"),
        _f("stop_lat", FieldType.FLOAT),
        _f("stop_lon", FieldType.FLOAT),
        _f("zone_id"),
        _f("stop_url", FieldType.URL),
        _f("location_type", FieldType.INT),
        _f("parent_station"),
        _f("wheelchair_boarding", FieldType.INT),
    ],
)

PATTERNS = TableSchema(
    name="patterns",
    key_field="pattern_id",
    fields=[
        _f("pattern_id"),
        _f("route_id", ref=True),
        _f("name"),
        _f("direction_id", FieldType.INT),
        _f("shape_id"),
    ],
)

# Shape points belong to the pattern that draws them and are linked through
# the pattern's shape_id rather than its key.
SHAPES = TableSchema(
    name="shapes",
    key_field="shape_id",
    parent_table="patterns",
    parent_link_field="shape_id",
    fields=[
        _f("shape_id"),
        _f("shape_pt_lat", FieldType.FLOAT),
        _f("shape_pt_lon", FieldType.FLOAT),
        _f("shape_pt_sequence", FieldType.INT),
        _f("shape_dist_traveled", FieldType.FLOAT),
    ],
)

PATTERN_STOPS = TableSchema(
    name="pattern_stops",
    key_field="pattern_id",
    parent_table="patterns",
    fields=[
        _f("pattern_id", ref=True),
        _f("stop_id", ref=True),
        _f("stop_sequence", FieldType.INT),
        _f("default_travel_time", FieldType.INT),
        _f("default_dwell_time", FieldType.INT),
        _f("pickup_type", FieldType.INT),
        _f("drop_off_type", FieldType.INT),
        _f("shape_dist_traveled", FieldType.FLOAT),
        _f("timepoint", FieldType.INT),
    ],
)

TRIPS = TableSchema(
    name="trips",
    key_field="trip_id",
    generate_key=True,
    fields=[
        _f("trip_id"),
        _f("route_id", ref=True),
        _f("service_id", ref=True),
        _f("pattern_id", ref=True),
        _f("trip_headsign"),
        _f("trip_short_name"),
        _f("direction_id", FieldType.INT),
        _f("block_id"),
        _f("shape_id"),
        _f("wheelchair_accessible", FieldType.INT),
        _f("bikes_allowed", FieldType.INT),
    ],
)

STOP_TIMES = TableSchema(
    name="stop_times",
    key_field="trip_id",
    parent_table="trips",
    fields=[
        _f("trip_id", ref=True),
        _f("stop_id", ref=True),
        _f("stop_sequence", FieldType.INT),
        _f("arrival_time", FieldType.TIME),
        _f("departure_time", FieldType.TIME),
        _f("stop_headsign"),
        _f("pickup_type", FieldType.INT),
        _f("drop_off_type", FieldType.INT),
        _f("shape_dist_traveled", FieldType.FLOAT),
        _f("timepoint", FieldType.INT),
    ],
)

TABLES_IN_ORDER = [
    AGENCY,
    CALENDAR,
    ROUTES,
    STOPS,
    PATTERNS,
    SHAPES,
    PATTERN_STOPS,
    TRIPS,
    STOP_TIMES,
]


def gtfs_catalog() -> SchemaCatalog:
    """Return the built-in GTFS catalog."""
    return SchemaCatalog(TABLES_IN_ORDER)
