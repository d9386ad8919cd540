"""Test fixtures for the route engine."""

import itertools
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine

from kural.config import Config
from kural.data_loader import ListingStore
from kural.models import LandingPad, Listing, Station
from kural.schema import listings, metadata, stations

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed reference time for listing ages and expiry."""
    return NOW


@pytest.fixture
def station_factory():
    """Build Station objects with sensible defaults."""

    def make(
        station_id,
        x=0.0,
        y=0.0,
        z=0.0,
        system_name=None,
        pad=LandingPad.LARGE,
        is_carrier=False,
        name=None,
    ):
        return Station(
            station_id=station_id,
            name=name or f"Station {station_id}",
            system_name=system_name or f"System {station_id}",
            x=x,
            y=y,
            z=z,
            max_landing_pad=pad,
            is_carrier=is_carrier,
        )

    return make


@pytest.fixture
def listing_factory():
    """Build Listing objects with auto-incrementing listing ids."""
    ids = itertools.count(1)

    def make(
        station_id,
        commodity,
        buy_price=0,
        sell_price=0,
        stock=0,
        demand=0,
        listed_at=NOW - timedelta(hours=1),
        listing_id=None,
    ):
        return Listing(
            listing_id=listing_id if listing_id is not None else next(ids),
            station_id=station_id,
            commodity=commodity,
            buy_price=buy_price,
            sell_price=sell_price,
            demand=demand,
            stock=stock,
            listed_at=listed_at,
        )

    return make


@pytest.fixture
def test_config():
    """Small worker pool and chunk size so tests exercise batching."""
    return Config(
        db_connection_string="sqlite://",
        max_workers=2,
        pair_chunk_size=3,
        top_n=5,
        random_seed=42,
        solver_time_limit=10.0,
    )


@pytest.fixture
def sqlite_engine(tmp_path):
    """File-backed SQLite database with the kural schema."""
    engine = create_engine(f"sqlite:///{tmp_path / 'kural.db'}")
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def seeded_store(sqlite_engine):
    """ListingStore over a small galaxy with listing history.

    Stations:
        1 Jameson Memorial (Shinrarta Dezhra), large pad, origin market
        2 Abraham Lincoln (Sol), large pad, destination market
        3 Ray Gateway (Diaguandri), medium pad
        4 Fleet carrier K7Q-1HT, at Sol
        5 Station with no coordinates (ignored)
    """
    with sqlite_engine.begin() as conn:
        conn.execute(
            stations.insert(),
            [
                {"id": 1, "name": "Jameson Memorial", "system_name": "Shinrarta Dezhra",
                 "x": 55.7, "y": 17.6, "z": 27.2, "max_landing_pad": "large",
                 "distance_to_arrival": 346.0, "is_carrier": False},
                {"id": 2, "name": "Abraham Lincoln", "system_name": "Sol",
                 "x": 0.0, "y": 0.0, "z": 0.0, "max_landing_pad": "large",
                 "distance_to_arrival": 493.0, "is_carrier": False},
                {"id": 3, "name": "Ray Gateway", "system_name": "Diaguandri",
                 "x": -41.1, "y": -62.2, "z": -103.3, "max_landing_pad": "medium",
                 "distance_to_arrival": None, "is_carrier": False},
                {"id": 4, "name": "K7Q-1HT", "system_name": "Sol",
                 "x": 0.0, "y": 0.0, "z": 0.0, "max_landing_pad": "large",
                 "distance_to_arrival": 10.0, "is_carrier": True},
                {"id": 5, "name": "Nowhere", "system_name": None,
                 "x": None, "y": None, "z": None, "max_landing_pad": None,
                 "distance_to_arrival": None, "is_carrier": False},
            ],
        )
        old = NOW - timedelta(days=3)
        recent = NOW - timedelta(hours=2)
        conn.execute(
            listings.insert(),
            [
                # Gold at station 1: stale cheap row, then the current row
                {"id": 1, "station_id": 1, "name": "Gold", "mean_price": 9000,
                 "buy_price": 100, "sell_price": 90, "demand": 0, "demand_bracket": 0,
                 "stock": 5000, "stock_bracket": 3, "listed_at": old},
                {"id": 2, "station_id": 1, "name": "Gold", "mean_price": 9000,
                 "buy_price": 9000, "sell_price": 8800, "demand": 0, "demand_bracket": 0,
                 "stock": 400, "stock_bracket": 2, "listed_at": recent},
                {"id": 3, "station_id": 1, "name": "Silver", "mean_price": 4800,
                 "buy_price": 4500, "sell_price": 4400, "demand": 0, "demand_bracket": 0,
                 "stock": 1000, "stock_bracket": 3, "listed_at": recent},
                # Station 2 buys both
                {"id": 4, "station_id": 2, "name": "Gold", "mean_price": 9000,
                 "buy_price": 0, "sell_price": 10000, "demand": 800, "demand_bracket": 2,
                 "stock": 0, "stock_bracket": 0, "listed_at": recent},
                {"id": 5, "station_id": 2, "name": "Silver", "mean_price": 4800,
                 "buy_price": 0, "sell_price": 5200, "demand": 300, "demand_bracket": 2,
                 "stock": 0, "stock_bracket": 0, "listed_at": recent},
                # Station 3 sells Gold cheaply, but only reachable on a medium pad
                {"id": 6, "station_id": 3, "name": "Gold", "mean_price": 9000,
                 "buy_price": 8500, "sell_price": 8300, "demand": 0, "demand_bracket": None,
                 "stock": 50, "stock_bracket": None, "listed_at": old},
                # Carrier undercuts everyone and must never be used
                {"id": 7, "station_id": 4, "name": "Gold", "mean_price": 9000,
                 "buy_price": 10, "sell_price": 5, "demand": 0, "demand_bracket": 0,
                 "stock": 10000, "stock_bracket": 3, "listed_at": recent},
                # Two Silver rows at station 3 with identical timestamps: lowest id wins
                {"id": 8, "station_id": 3, "name": "Silver", "mean_price": 4800,
                 "buy_price": 4000, "sell_price": 3900, "demand": 0, "demand_bracket": 0,
                 "stock": 20, "stock_bracket": 1, "listed_at": recent},
                {"id": 9, "station_id": 3, "name": "Silver", "mean_price": 4800,
                 "buy_price": 4100, "sell_price": 3950, "demand": 0, "demand_bracket": 0,
                 "stock": 25, "stock_bracket": 1, "listed_at": recent},
            ],
        )
    return ListingStore(engine=sqlite_engine)
