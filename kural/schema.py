"""Database schema for type-safe SQLAlchemy Core query building.

Defines tables as SQLAlchemy Table objects so that:
- Queries use Column objects instead of f-string interpolation
- Column name typos become AttributeError at import time
- Schema drift is caught by validation tests (see tests/test_schema.py)

Usage:
    from .schema import listings, stations

    query = select(listings.c.name).where(listings.c.station_id == sid)
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

metadata = MetaData()

# ---------------------------------------------------------------------------
# Domain tables
# ---------------------------------------------------------------------------

stations = Table(
    "stations",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String, nullable=False),
    Column("system_name", String),
    Column("x", Float),
    Column("y", Float),
    Column("z", Float),
    # 'small' | 'medium' | 'large'; NULL when unknown
    Column("max_landing_pad", Text),
    Column("distance_to_arrival", Float),
    Column("is_carrier", Boolean, nullable=False, default=False),
)

# Append-only market history: one row per station/commodity per update
listings = Table(
    "listings",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("station_id", Integer, nullable=False, index=True),
    Column("name", String, nullable=False),
    Column("mean_price", Integer),
    Column("buy_price", Integer, nullable=False),
    Column("sell_price", Integer, nullable=False),
    Column("demand", Integer, nullable=False),
    Column("demand_bracket", Integer),
    Column("stock", Integer, nullable=False),
    Column("stock_bracket", Integer),
    Column("listed_at", DateTime(timezone=True), nullable=False),
)

# ---------------------------------------------------------------------------
# Registry for validation tests
# ---------------------------------------------------------------------------

ALL_TABLES = [
    stations,
    listings,
]
